"""Validators for chain-sourced data."""

from app.validators.address import is_zero_address, validate_address
from app.validators.content import validate_nft_data

__all__ = [
    "is_zero_address",
    "validate_address",
    "validate_nft_data",
]
