from migration_gateway.models.legacy import LegacyBase, LegacyUser

__all__ = ["LegacyBase", "LegacyUser"]
