"""Identity resolution for dashboard requests."""

from collections.abc import Mapping

from src.services.environment import Environment

# Identity headers forwarded by the Databricks Apps proxy, in priority order
IDENTITY_HEADERS = ("X-Forwarded-Email", "X-Forwarded-User")


def get_current_user_id(headers: Mapping[str, str], environment: Environment) -> str | None:
    """Resolve the owner id for the current request.

    Args:
        headers: Incoming request headers.
        environment: Active environment, supplying the fallback owner.

    Returns:
        The forwarded identity, else the environment's default user id
        (None in the live environment).
    """
    for header in IDENTITY_HEADERS:
        value = headers.get(header)
        if value and value.strip():
            return value.strip()
    return environment.default_user_id
