import pytest
import pytest_asyncio

from tenantcare.core.exceptions import ConflictError

LOCATOR = "clinic_accessor_1"


@pytest_asyncio.fixture
async def entities(store_service):
    store = await store_service.resolve(LOCATOR)
    return store.entities


def user_values(email: str, **overrides):
    values = {
        "username": "jdoe",
        "email": email,
        "password_hash": "x",
        "role": "patient",
    }
    values.update(overrides)
    return values


@pytest.mark.unit
class TestEntityAccessor:
    """CRUD accessor bound to one clinic store"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, entities):
        user = await entities.User.create(**user_values("a@x.com"))

        assert user.id
        assert user.verification_status == "pending"
        fetched = await entities.User.get(user.id)
        assert fetched.email == "a@x.com"

    @pytest.mark.asyncio
    async def test_duplicate_unique_field_raises_conflict(self, entities):
        await entities.User.create(**user_values("a@x.com"))

        with pytest.raises(ConflictError):
            await entities.User.create(**user_values("a@x.com", username="other"))

    @pytest.mark.asyncio
    async def test_find_with_filters_order_and_limit(self, entities):
        for index in range(3):
            await entities.Announcement.create(title=f"Notice {index}", message="...", created_by="admin")

        found = await entities.Announcement.find(created_by="admin", order_by="title", descending=True, limit=2)

        assert [item.title for item in found] == ["Notice 2", "Notice 1"]
        assert await entities.Announcement.count(created_by="admin") == 3
        assert await entities.Announcement.exists(title="Notice 0")
        assert not await entities.Announcement.exists(title="Missing")

    @pytest.mark.asyncio
    async def test_update(self, entities):
        user = await entities.User.create(**user_values("a@x.com"))

        updated = await entities.User.update(user.id, verification_status="verified")

        assert updated.verification_status == "verified"
        assert await entities.User.update("missing-id", verification_status="verified") is None
        with pytest.raises(AttributeError):
            await entities.User.update(user.id, not_a_column=1)

    @pytest.mark.asyncio
    async def test_delete(self, entities):
        user = await entities.User.create(**user_values("a@x.com"))

        assert await entities.User.delete(user.id) is True
        assert await entities.User.get(user.id) is None
        assert await entities.User.delete(user.id) is False

    @pytest.mark.asyncio
    async def test_structured_values_round_trip(self, entities):
        """Free-form JSON fields keep nested maps and sequences"""
        log = await entities.ActivityLog.create(
            user_id="u1",
            action="login",
            metadata_={"ip": "10.0.0.1", "tags": ["mobile", "ios"], "attempt": 2},
        )

        fetched = await entities.ActivityLog.get(log.id)
        assert fetched.metadata_ == {"ip": "10.0.0.1", "tags": ["mobile", "ios"], "attempt": 2}

    @pytest.mark.asyncio
    async def test_to_dict_hides_private_fields(self, entities):
        user = await entities.User.create(**user_values("a@x.com", otp="123456"))

        public = user.to_dict()

        assert "password_hash" not in public
        assert "otp" not in public
        assert public["email"] == "a@x.com"
        assert "password_hash" in user.to_dict(include_private=True)

    @pytest.mark.asyncio
    async def test_metadata_column_serialized_under_column_name(self, entities):
        log = await entities.ActivityLog.create(user_id="u1", action="login", metadata_={"ip": "10.0.0.1"})

        assert log.to_dict()["metadata"] == {"ip": "10.0.0.1"}
