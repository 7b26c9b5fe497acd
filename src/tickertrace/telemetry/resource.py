"""Resource describing the process that emitted the spans."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from opentelemetry.sdk.resources import Resource

from tickertrace._version import __version__

if TYPE_CHECKING:
    from tickertrace.config import Config


def get_otel_resource(config: Config) -> Resource:
    """Service identity plus the model and gateway the run was configured with.

    The gateway host is omitted in disabled mode, where calls go to OpenAI directly.
    """
    attributes: dict[str, str] = {
        "service.name": config.service_name,
        "service.version": config.service_version,
        "telemetry.sdk.name": "tickertrace",
        "telemetry.sdk.version": __version__,
        "telemetry.sdk.language": "python",
        "tickertrace.model": config.model,
    }
    if not config.disabled:
        attributes["tickertrace.gateway.host"] = urlsplit(config.gateway_url).netloc
    return Resource.create(attributes)
