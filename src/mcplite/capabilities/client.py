"""Client capability declaration sent during initialize."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SamplingCapability:
    """
    Client services server-initiated LLM sampling.

    Only declare this when the application answers sampling requests.
    """

    pass


@dataclass
class RootsCapability:
    """Client can list filesystem roots for the server."""

    list_changed: bool = False
    """Whether client will notify server when roots change."""


@dataclass
class ClientCapabilities:
    """
    Capabilities this client declares to the server.

    The default declares nothing beyond an empty experimental section.
    """

    sampling: SamplingCapability | None = None
    roots: RootsCapability | None = None
    experimental: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to wire format for initialize request.

        Returns:
            Dict suitable for JSON serialization.
        """
        caps: dict[str, Any] = {"experimental": dict(self.experimental)}

        if self.sampling is not None:
            caps["sampling"] = {}

        if self.roots is not None:
            caps["roots"] = {"listChanged": self.roots.list_changed}

        return caps
