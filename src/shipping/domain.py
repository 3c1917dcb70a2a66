"""Shipping bounded context — courier integration and delivery lifecycle.

Translates one canonical courier contract onto each provider's wire protocol
and reconciles asynchronous provider tracking events into the shipment and
NDR (non-delivery report) state machines. Uses CQRS because providers own the
raw tracking state and we only keep the canonical projection of it.
"""

from protean.domain import Domain

shipping = Domain(name="shipping")
