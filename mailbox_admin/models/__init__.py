from .access_token_model import AccessTokenModel
from .google_auth_model import GoogleAuthModel
from .admin_user_model import AdminUserModel
from .email_model import EmailModel, EmailStateModel

__all__ = [
    "AccessTokenModel",
    "GoogleAuthModel",
    "AdminUserModel",
    "EmailModel",
    "EmailStateModel"
]
