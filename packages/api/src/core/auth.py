# This project was developed with assistance from AI tools.
"""Pure auth utility functions with no FastAPI or HTTP dependencies."""

from db.enums import UserRole

from ..schemas.auth import DataScope


def build_data_scope(role: UserRole, user_id: str) -> DataScope:
    """Build data scope rules based on the user's role."""
    if role == UserRole.ADMIN:
        return DataScope(full_pipeline=True, user_id=user_id)
    # Everyone else sees the deals they are a party to.
    return DataScope(user_id=user_id)
