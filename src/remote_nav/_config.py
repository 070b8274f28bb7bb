"""Configuration model — immutable containers describing provider connections."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class BackendConfig:
    """Resolved connection parameters of one provider.

    :param type: Provider type identifier (``"s3"``, ``"sftp"``, ``"stub"``).
    :param options: Keyword arguments for the provider constructor
        (endpoint, region, credentials, bucket/path, ...).
    """

    type: str
    options: dict[str, object] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class SessionConfig:
    """Connection parameters keyed by backend name.

    The credential layer persists one entry per backend (e.g. ``"S3"`` and
    ``"sftp"`` tabs) and hands the resolved mapping over.

    :param backends: Mapping of backend names to their configs.
    """

    backends: dict[str, BackendConfig] = dataclasses.field(default_factory=dict)

    def validate(self) -> None:
        """Validate that every backend names a provider type.

        :raises ValueError: If a backend config has an empty type.
        """
        for name, cfg in self.backends.items():
            if not cfg.type or not cfg.type.strip():
                raise ValueError(f"Backend '{name}' has no provider type")

    def get(self, name: str) -> BackendConfig:
        """Config of backend ``name``.

        :raises KeyError: If no backend with this name exists.
        """
        if name not in self.backends:
            available = sorted(self.backends.keys())
            raise KeyError(f"Unknown backend '{name}'. Available backends: {available}")
        return self.backends[name]

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> SessionConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        :param data: Dict with a ``backends`` key.
        """
        raw_backends = data.get("backends", {})
        if not isinstance(raw_backends, dict):
            msg = "Expected 'backends' to be a dict"
            raise TypeError(msg)

        backends: dict[str, BackendConfig] = {}
        for name, cfg in raw_backends.items():
            if not isinstance(cfg, dict):
                msg = f"Backend config for '{name}' must be a dict"
                raise TypeError(msg)
            backends[str(name)] = BackendConfig(
                type=str(cfg["type"]),
                options=dict(cfg.get("options", {})),
            )

        return cls(backends=backends)
