"""Unit tests for listing summaries."""

from types import SimpleNamespace

from app.config.constants import ZERO_ADDRESS
from app.services.listing_sync_service import Listing, summarize_listings, total_volume
from tests.factories import AUTHOR, BUYER


class TestListing:
    """Tests for Listing.is_active."""

    def test_active(self):
        assert Listing(price=1, seller=AUTHOR, amount=2).is_active

    def test_zero_seller_inactive(self):
        assert not Listing(price=1, seller=ZERO_ADDRESS, amount=2).is_active

    def test_zero_amount_inactive(self):
        """A slot with a seller but nothing left is not active."""
        assert not Listing(price=1, seller=AUTHOR, amount=0).is_active

    def test_from_tuple(self):
        listing = Listing.from_tuple((10, AUTHOR, 3))
        assert listing == Listing(price=10, seller=AUTHOR, amount=3)


class TestSummarizeListings:
    """Tests for floor price and listed amount."""

    def test_excludes_empty_slot(self):
        """A cheaper delisted slot does not set the floor."""
        listings = [
            Listing(price=10**18, seller=AUTHOR, amount=2),
            Listing(price=5 * 10**17, seller=ZERO_ADDRESS, amount=0),
        ]
        assert summarize_listings(listings) == (10**18, 2)

    def test_minimum_over_active(self):
        listings = [
            Listing(price=300, seller=AUTHOR, amount=1),
            Listing(price=200, seller=BUYER, amount=4),
            Listing(price=100, seller=BUYER, amount=0),
        ]
        assert summarize_listings(listings) == (200, 5)

    def test_nothing_active(self):
        assert summarize_listings([]) == (None, 0)
        assert summarize_listings([Listing(price=1, seller=ZERO_ADDRESS, amount=0)]) == (None, 0)


class TestTotalVolume:
    """Tests for total_volume."""

    def test_price_times_amount(self):
        purchases = [
            SimpleNamespace(data={"_price": "1000000000000000000", "_amount": "2"}),
            SimpleNamespace(data={"_price": "5", "_amount": "3"}),
        ]
        assert total_volume(purchases) == 2 * 10**18 + 15

    def test_empty(self):
        assert total_volume([]) == 0
