from collections.abc import Callable

# Returns the currently acting user id, or None when nobody is signed in.
IdentityProvider = Callable[[], str | None]


def no_identity() -> str | None:
    return None


def static_identity(user_id: str | None) -> IdentityProvider:
    """Identity provider that always reports *user_id*."""

    def provider() -> str | None:
        return user_id

    return provider


def resolve_user_id(
    explicit: str | None,
    provider: IdentityProvider,
    fallback: str,
) -> str:
    """Explicit id, else the provider's current id, else *fallback*."""
    if explicit:
        return explicit
    current = provider()
    if current:
        return current
    return fallback
