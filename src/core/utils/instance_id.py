"""Router instance ID generation using coolname for memorable identifiers."""

from coolname import generate_slug


def generate_instance_id(prefix: str = "") -> str:
    """Generate a unique, memorable router instance ID.

    Human-readable identifiers are easier to trace in logs than hostnames or
    UUIDs when several router processes run side by side.

    Args:
        prefix: Optional prefix to prepend to the generated ID (e.g., "feedrouter")

    Returns:
        An ID in the format "prefix-word1-word2-word3" or "word1-word2-word3"

    Examples:
        >>> generate_instance_id()
        'brave-golden-tiger'
        >>> generate_instance_id("feedrouter")
        'feedrouter-swift-blue-falcon'
    """
    slug = generate_slug(3)

    if prefix:
        return f"{prefix}-{slug}"

    return slug
