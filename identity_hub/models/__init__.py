from identity_hub.models.permission import Permission
from identity_hub.models.role import Role
from identity_hub.models.token import Token
from identity_hub.models.user import PictureRef, User

__all__ = ["Permission", "Role", "Token", "PictureRef", "User"]
