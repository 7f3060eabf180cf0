from tenantcare.repositories.entity_accessor import EntityAccessor

__all__ = ["EntityAccessor"]
