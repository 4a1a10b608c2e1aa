from ..errors import InvalidArgument
from ..types import DomainProfile
from .caffeine import CAFFEINE

PROFILES: dict[str, DomainProfile] = {
    CAFFEINE.name: CAFFEINE,
}


def get_profile(name: str) -> DomainProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise InvalidArgument(
            f"Unknown domain profile {name!r}; available: {sorted(PROFILES)}"
        ) from None
