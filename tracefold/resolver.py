"""Resolution of continuation carriers back to their logical methods."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tracefold.conventions import CarrierMatch
from tracefold.metadata import MetadataSource, Parameter

logger = logging.getLogger(__name__)

UNRESOLVED_PARAMETERS = "??"


@dataclass(frozen=True)
class ResolvedCall:
    """The logical call a resume frame stands for.

    ``parameters`` is ``None`` when the method was identified but its
    parameter list could not be determined unambiguously.
    """

    scope: str
    method: str
    parameters: tuple[Parameter, ...] | None

    @property
    def is_resolved(self) -> bool:
        return self.parameters is not None

    def render_parameters(self) -> str:
        if self.parameters is None:
            return UNRESOLVED_PARAMETERS
        return ",".join(parameter.render() for parameter in self.parameters)


def resolve_carrier(
    carrier: CarrierMatch,
    metadata: MetadataSource | None = None,
) -> ResolvedCall | None:
    """Recover the method a carrier type was generated from.

    Returns ``None`` only when the metadata positively reports that the
    declaring type has no method of the carrier's name; the caller then keeps
    the frame as it was. Every other failure yields the method name with
    unresolved parameters.
    """
    unresolved = ResolvedCall(scope=carrier.outer, method=carrier.method, parameters=None)
    if metadata is None:
        return unresolved

    try:
        candidates = metadata.find_methods(carrier.outer, carrier.method)
    except Exception as exc:
        logger.debug("Metadata lookup for %s failed: %s", carrier.carrier, exc)
        return unresolved

    if candidates is None:
        return unresolved
    if not candidates:
        logger.debug("No method %s on %s for carrier %s", carrier.method, carrier.outer, carrier.carrier)
        return None
    if len(candidates) > 1:
        return unresolved

    (signature,) = candidates
    if signature.parameters is None:
        return unresolved
    return ResolvedCall(
        scope=carrier.outer,
        method=signature.name or carrier.method,
        parameters=tuple(signature.parameters),
    )


__all__ = ["ResolvedCall", "UNRESOLVED_PARAMETERS", "resolve_carrier"]
