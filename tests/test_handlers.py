"""
Tests for the per-kind event transformers.
"""

import pytest
from sqlalchemy import func, select

from charity_indexer.core.exceptions import EventPayloadError
from charity_indexer.indexer.core.events import EventKind
from charity_indexer.indexer.core.types import HandlerOutcome, ProcessingStats
from charity_indexer.indexer.handlers import (
    CampaignHandlers,
    DonationHandlers,
    FundsHandlers,
    RetiredHandlers,
)
from charity_indexer.models import Campaign, Donation, FundsClaimed

from helpers import campaign_created, donation, funds_claimed, make_event


@pytest.fixture
def stats():
    return ProcessingStats()


async def apply(session_maker, handler, event):
    async with session_maker() as session:
        outcome = await handler(session, event)
        await session.commit()
    return outcome


async def load_campaign(session_maker, campaign_id="1"):
    async with session_maker() as session:
        return await session.get(Campaign, campaign_id)


async def count(session_maker, model):
    async with session_maker() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestCampaignCreated:
    async def test_creates_campaign(self, session_maker, stats):
        handler = CampaignHandlers(stats).handle_campaign_created

        outcome = await apply(session_maker, handler, campaign_created(101))

        campaign = await load_campaign(session_maker)
        assert outcome is HandlerOutcome.APPLIED
        assert campaign.creator_address == "0xc0ffee"
        assert campaign.goal_amount == 1_000
        assert campaign.end_timestamp_secs == 1_900_000_000
        assert campaign.total_donated == 0
        assert campaign.created_at.year == 2023
        assert stats.campaigns_upserted == 1

    async def test_replay_keeps_one_row_with_latest_values(self, session_maker, stats):
        handler = CampaignHandlers(stats).handle_campaign_created

        for description in ("first", "second", "third"):
            await apply(session_maker, handler, campaign_created(101, description=description))

        assert await count(session_maker, Campaign) == 1
        assert (await load_campaign(session_maker)).description == "third"

    async def test_replay_preserves_total_donated(self, session_maker, stats):
        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))
        await apply(session_maker, DonationHandlers(stats).handle_donation, donation(102, amount=40))

        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))

        assert (await load_campaign(session_maker)).total_donated == 40

    async def test_new_campaign_absorbs_orphan_donations(self, session_maker, stats):
        await apply(session_maker, DonationHandlers(stats).handle_donation, donation(90, amount=15))

        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))

        assert (await load_campaign(session_maker)).total_donated == 15

    async def test_bad_payload_raises(self, session_maker, stats):
        handler = CampaignHandlers(stats).handle_campaign_created
        event = make_event(EventKind.CAMPAIGN_CREATED, 101, campaign_id=1)

        with pytest.raises(EventPayloadError):
            await apply(session_maker, handler, event)
        assert await count(session_maker, Campaign) == 0


class TestDonation:
    async def test_donations_sum_into_total(self, session_maker, stats):
        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))
        handler = DonationHandlers(stats).handle_donation

        amounts = [10, 20, 5, 65]
        for offset, amount in enumerate(amounts):
            outcome = await apply(session_maker, handler, donation(200 + offset, amount=amount))
            assert outcome is HandlerOutcome.APPLIED

        assert (await load_campaign(session_maker)).total_donated == sum(amounts)
        assert await count(session_maker, Donation) == len(amounts)
        assert stats.donations_recorded == len(amounts)

    async def test_donation_row_fields(self, session_maker, stats):
        await apply(session_maker, DonationHandlers(stats).handle_donation, donation(102, amount=10, donor="0xfeed"))

        async with session_maker() as session:
            row = await session.get(Donation, "102")
        assert row.transaction_version == 102
        assert row.donor == "0xfeed"
        assert row.heart_tokens_minted == 10
        assert row.donated_at is not None

    async def test_unknown_campaign_is_skipped_without_error(self, session_maker, stats):
        outcome = await apply(
            session_maker,
            DonationHandlers(stats).handle_donation,
            donation(51, campaign_id=999, amount=10),
        )

        assert outcome is HandlerOutcome.SKIPPED
        assert await count(session_maker, Campaign) == 0
        assert await count(session_maker, Donation) == 1

    async def test_redelivered_donation_is_not_counted_twice(self, session_maker, stats):
        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))
        handler = DonationHandlers(stats).handle_donation

        first = await apply(session_maker, handler, donation(102, amount=10))
        second = await apply(session_maker, handler, donation(102, amount=10))

        assert first is HandlerOutcome.APPLIED
        assert second is HandlerOutcome.DUPLICATE
        assert (await load_campaign(session_maker)).total_donated == 10
        assert await count(session_maker, Donation) == 1


class TestFundsClaimed:
    async def test_appends_claims(self, session_maker, stats):
        handler = FundsHandlers(stats).handle_funds_claimed

        await apply(session_maker, handler, funds_claimed(300, amount=100))
        await apply(session_maker, handler, funds_claimed(301, amount=200))

        async with session_maker() as session:
            claims = (await session.scalars(
                select(FundsClaimed).order_by(FundsClaimed.transaction_hash)
            )).all()
        assert [c.amount_claimed for c in claims] == [100, 200]
        assert claims[0].claimed_at.year == 2027
        assert stats.claims_recorded == 2

    async def test_claim_does_not_touch_campaign_total(self, session_maker, stats):
        await apply(session_maker, CampaignHandlers(stats).handle_campaign_created, campaign_created(101))
        await apply(session_maker, DonationHandlers(stats).handle_donation, donation(102, amount=70))

        await apply(session_maker, FundsHandlers(stats).handle_funds_claimed, funds_claimed(103, amount=70))

        assert (await load_campaign(session_maker)).total_donated == 70

    async def test_duplicate_claim_ignored(self, session_maker, stats):
        handler = FundsHandlers(stats).handle_funds_claimed

        await apply(session_maker, handler, funds_claimed(300))
        outcome = await apply(session_maker, handler, funds_claimed(300))

        assert outcome is HandlerOutcome.DUPLICATE
        assert await count(session_maker, FundsClaimed) == 1


class TestRetired:
    @pytest.mark.parametrize("kind", [
        EventKind.STAKED,
        EventKind.UNSTAKED,
        EventKind.REWARDS_CLAIMED,
        EventKind.PROPOSAL_CREATED,
        EventKind.VOTE_CAST,
    ])
    async def test_retired_kinds_write_nothing(self, session_maker, stats, kind):
        outcome = await apply(
            session_maker,
            RetiredHandlers(stats).handle_retired,
            make_event(kind, 5, amount=1),
        )

        assert outcome is HandlerOutcome.IGNORED
        for model in (Campaign, Donation, FundsClaimed):
            assert await count(session_maker, model) == 0
