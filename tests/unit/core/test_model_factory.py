import pytest
import pytest_asyncio
from sqlalchemy.engine import make_url

from tenantcare.core.exceptions import SchemaBindingError
from tenantcare.core.tenancy import ModelFactory, TenantConnection, TenantConnectionCache
from tenantcare.models.db.clinic import ENTITY_NAMES, SCHEMA_VERSION
from tests.conftest import StubEngine

LOCATOR = "clinic_model_factory_1"

EXPECTED_ENTITIES = {
    "User",
    "Appointment",
    "Invoice",
    "Medication",
    "MedicalRecord",
    "Report",
    "Ticket",
    "HealthMetric",
    "PharmacyItem",
    "PharmacyTransaction",
    "InventoryItem",
    "ServiceItem",
    "ActivityLog",
    "Announcement",
    "Conversation",
    "Message",
    "Call",
    "DoctorDetail",
    "PatientDetail",
    "EmailPreference",
    "Settings",
    "AiChatSession",
    "ClinicProfile",
}


@pytest_asyncio.fixture
async def cache(settings):
    cache = TenantConnectionCache(settings)
    yield cache
    await cache.close_all()


@pytest.mark.unit
class TestModelFactory:
    """Schema binding per tenant connection"""

    @pytest.mark.asyncio
    async def test_binds_every_entity(self, cache):
        factory = ModelFactory()
        connection = await cache.get_connection(LOCATOR)

        entities = await factory.get_entity_set(connection, LOCATOR)

        assert set(entities) == EXPECTED_ENTITIES
        assert set(ENTITY_NAMES) == EXPECTED_ENTITIES
        assert entities.schema_version == SCHEMA_VERSION
        assert entities.User is entities["User"]
        assert entities.User.locator == LOCATOR

    @pytest.mark.asyncio
    async def test_binding_is_idempotent(self, cache):
        """Second lookup returns the same accessor instances without rebinding"""
        factory = ModelFactory()
        connection = await cache.get_connection(LOCATOR)

        first = await factory.get_entity_set(connection, LOCATOR)
        second = await factory.get_entity_set(connection, LOCATOR)

        assert first is second
        assert all(first[name] is second[name] for name in first)
        assert factory.bind_count == 1

    @pytest.mark.asyncio
    async def test_same_entity_names_for_every_tenant(self, cache):
        factory = ModelFactory()
        first = await factory.get_entity_set(await cache.get_connection("clinic_a_1"), "clinic_a_1")
        second = await factory.get_entity_set(await cache.get_connection("clinic_b_2"), "clinic_b_2")

        assert list(first) == list(second)
        assert first.User is not second.User

    @pytest.mark.asyncio
    async def test_rebinds_after_connection_replaced(self, cache):
        factory = ModelFactory()
        old_connection = await cache.get_connection(LOCATOR)
        old_entities = await factory.get_entity_set(old_connection, LOCATOR)

        old_connection.mark_closed()
        new_connection = await cache.get_connection(LOCATOR)
        new_entities = await factory.get_entity_set(new_connection, LOCATOR)

        assert new_entities is not old_entities
        assert new_entities.connection is new_connection
        assert factory.bind_count == 2

    @pytest.mark.asyncio
    async def test_binding_failure_is_not_cached(self):
        factory = ModelFactory()
        url = make_url("sqlite+aiosqlite:///unused.db")
        broken = TenantConnection(LOCATOR, url, StubEngine(bind_error=RuntimeError("disk I/O error")))

        with pytest.raises(SchemaBindingError):
            await factory.get_entity_set(broken, LOCATOR)

        assert LOCATOR not in factory
        assert factory.bind_count == 0

        working = TenantConnection(LOCATOR, url, StubEngine())
        entities = await factory.get_entity_set(working, LOCATOR)
        assert set(entities) == EXPECTED_ENTITIES

    @pytest.mark.asyncio
    async def test_unknown_entity_attribute(self, cache):
        factory = ModelFactory()
        entities = await factory.get_entity_set(await cache.get_connection(LOCATOR), LOCATOR)

        with pytest.raises(AttributeError):
            _ = entities.Prescription
        with pytest.raises(KeyError):
            _ = entities["Prescription"]
