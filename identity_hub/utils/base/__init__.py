from identity_hub.utils.base.actor import Actor
from identity_hub.utils.base.dates import as_utc, day_range, to_query_datetime, utcnow
from identity_hub.utils.base.enums import BaseEnum, PermissionAction, TokenType
from identity_hub.utils.base.ids import (
    CUSTOM_ID_PATTERN,
    SYSTEM_USER_ID,
    generate_unique_id,
    generate_username,
)
from identity_hub.utils.base.result import Err, Ok, Result, unwrap

__all__ = [
    "Actor",
    "as_utc",
    "day_range",
    "to_query_datetime",
    "utcnow",
    "BaseEnum",
    "PermissionAction",
    "TokenType",
    "CUSTOM_ID_PATTERN",
    "SYSTEM_USER_ID",
    "generate_unique_id",
    "generate_username",
    "Err",
    "Ok",
    "Result",
    "unwrap",
]
