from .bearer import extract_bearer_token, is_authorized, require_update_password

__all__ = ["extract_bearer_token", "is_authorized", "require_update_password"]
