"""Address validators."""

from app.config.constants import ZERO_ADDRESS


def validate_address(address: str) -> tuple[bool, str | None]:
    """
    Validate an EVM address.

    Args:
        address: Address to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Examples:
        >>> validate_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    try:
        int(address[2:], 16)
    except ValueError:
        return False, "Invalid address format"

    return True, None


def is_zero_address(address: str | None) -> bool:
    """Check whether an address is the zero (mint/burn) address."""
    return bool(address) and address.lower() == ZERO_ADDRESS
