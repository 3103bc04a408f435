from enum import Enum


class BaseEnum(Enum):
    @classmethod
    def choices(cls):
        return [(item.value, item.name) for item in cls]

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class TokenType(BaseEnum):
    ACCESS = "access"
    REFRESH = "refresh"
    RESET_PASSWORD = "reset-password"
    VERIFY_EMAIL = "verify-email"


class PermissionAction(BaseEnum):
    CREATE = "create"
    MODIFY = "modify"
    GET = "get"
    UPDATE = "update"
    DELETE = "delete"
