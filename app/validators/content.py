"""Content validators applied before a token is cached."""

from app.validators.address import validate_address


def validate_nft_data(
    uri: object,
    author: object,
    content: str | None,
    max_content_bytes: int,
) -> list[str]:
    """
    Validate resolved token data.

    Args:
        uri: Token URI returned by the contract
        author: Author address returned by the contract
        content: Resolved content (may be None when not yet available)
        max_content_bytes: Size cap for content

    Returns:
        List of problems; empty when the data may be cached
    """
    errors: list[str] = []

    is_valid, _ = validate_address(author) if isinstance(author, str) else (False, None)
    if not is_valid:
        errors.append(f"Invalid author address: {author}")

    if not uri or not isinstance(uri, str):
        errors.append("Missing or invalid URI")

    if content is not None and len(content.encode("utf-8")) > max_content_bytes:
        errors.append(f"Content exceeds {max_content_bytes} bytes limit")

    return errors
