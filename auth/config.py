"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (minutes for short durations,
    hours for longer ones) to make configuration intuitive.
    """

    # Session settings
    session_expiry_hours: int = Field(
        default=12,
        description="Session lifetime in hours",
        ge=1,
        le=720,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to extend session expiry on activity",
    )
    session_extend_threshold_hours: int = Field(
        default=2,
        description="Extend session if less than this many hours remaining",
        ge=1,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL used to build confirmation links",
    )
    confirmation_redirect_path: str = Field(
        default="/login",
        description="Where a newly created account lands after confirming its email",
    )
    app_name: str = Field(
        default="Toiture Back-Office",
        description="Application name shown to users",
    )

    @property
    def confirmation_redirect_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}{self.confirmation_redirect_path}"
