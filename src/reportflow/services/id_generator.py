"""Request ID generation."""

import uuid


def generate_request_id() -> str:
    """Return a fresh random (UUID4) request id, e.g. "3f2b8c1e-...".

    The id doubles as the store key and the partition key, so it must be
    unique across every API instance without coordination.
    """
    return str(uuid.uuid4())
