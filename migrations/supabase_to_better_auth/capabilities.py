from dataclasses import dataclass, field

from db.config import Settings


@dataclass(frozen=True)
class AuthCapabilities:
    """Which Better Auth plugins and social providers the target instance offers.

    Resolved once per run and never re-read mid-run.
    """

    admin: bool = False
    anonymous: bool = False
    phone_number: bool = False
    social_providers: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthCapabilities":
        return cls(
            admin=settings.enable_admin_plugin,
            anonymous=settings.enable_anonymous_plugin,
            phone_number=settings.enable_phone_number_plugin,
            social_providers=frozenset(settings.social_providers),
        )

    def describe(self) -> str:
        plugins = [
            name
            for name, enabled in (
                ("admin", self.admin),
                ("anonymous", self.anonymous),
                ("phone-number", self.phone_number),
            )
            if enabled
        ]
        providers = ", ".join(sorted(self.social_providers)) or "none"
        return f"plugins: {', '.join(plugins) or 'none'} | social providers: {providers}"
