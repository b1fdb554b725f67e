"""
Tests for newsletter subscription de-duplication.
"""

import pytest

from shopcart.api.errors import UpstreamServiceError
from shopcart.api.services.subscription_service import (
    cleanup_duplicate_subscriptions,
    find_duplicate_subscriptions,
)

SUBSCRIPTIONS = [
    {"_id": "s1", "email": "jane@shop.test", "subscribedAt": "2026-01-01"},
    {"_id": "s2", "email": "bob@shop.test", "subscribedAt": "2026-01-02"},
    {"_id": "s3", "email": " JANE@shop.test ", "subscribedAt": "2026-01-03"},
    {"_id": "s4", "email": "jane@shop.test", "subscribedAt": "2026-01-04"},
    {"_id": "s5", "email": "", "subscribedAt": "2026-01-05"},
]


def test_oldest_subscription_is_kept():
    emails, to_delete = find_duplicate_subscriptions(SUBSCRIPTIONS)

    assert emails == ["jane@shop.test"]
    assert to_delete == ["s3", "s4"]


def test_no_duplicates():
    assert find_duplicate_subscriptions(SUBSCRIPTIONS[:2]) == ([], [])


@pytest.mark.asyncio
async def test_cleanup_deletes_duplicates(sanity):
    sanity.fetch.return_value = SUBSCRIPTIONS

    result = await cleanup_duplicate_subscriptions(sanity)

    assert result == {
        "success": True,
        "message": "Cleanup completed successfully",
        "duplicatesFound": 1,
        "duplicatesRemoved": 2,
        "affectedEmails": ["jane@shop.test"],
    }
    sanity.transaction.assert_awaited_once_with(
        [{"delete": {"id": "s3"}}, {"delete": {"id": "s4"}}]
    )
    sanity.delete.assert_not_called()


@pytest.mark.asyncio
async def test_cleanup_with_nothing_to_do(sanity):
    sanity.fetch.return_value = []

    result = await cleanup_duplicate_subscriptions(sanity)

    assert result["duplicatesRemoved"] == 0
    sanity.transaction.assert_not_called()


@pytest.mark.asyncio
async def test_cleanup_failure_deletes_nothing(sanity):
    sanity.fetch.return_value = SUBSCRIPTIONS
    sanity.transaction.side_effect = UpstreamServiceError("Sanity", "mutation rejected", 409)

    with pytest.raises(UpstreamServiceError):
        await cleanup_duplicate_subscriptions(sanity)

    sanity.delete.assert_not_called()
