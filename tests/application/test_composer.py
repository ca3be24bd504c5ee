import pytest

from lessfeed.application.composer import (
    FeedComposer,
    SessionContext,
    UserState,
    filter_cards,
    score_card,
)
from lessfeed.domain.models import Content, Lang, ListMode, Opening, System
from lessfeed.domain.review import MS_PER_HOUR, ReviewItem

NOW_MS = 1_736_935_200_000
DAY = "2025-01-15"


def compose(composer, cards, mode=ListMode.FEED, state=None, **kwargs):
    return composer.compose(
        cards, mode, state or UserState(), Lang.EN, now_ms=NOW_MS, day=DAY, **kwargs
    )


def ids(items):
    return [item.id for item in items]


@pytest.fixture
def composer():
    return FeedComposer(SessionContext())


# ---------- Scoring ----------


def test_score_floors(card_factory):
    card = card_factory("x")
    session = SessionContext()
    assert score_card(card, UserState(unuseful={"x"}, learned={"x"}), session, NOW_MS) == -1000
    assert score_card(card, UserState(learned={"x"}), session, NOW_MS) == -500
    assert score_card(card, UserState(), session, NOW_MS) == 300


def test_score_engagement_is_capped(card_factory):
    card = card_factory("x")
    session = SessionContext()
    session.add_view_duration("x", 1500)
    assert score_card(card, UserState(), session, NOW_MS) == 150
    session.add_view_duration("x", 10_000)
    assert score_card(card, UserState(), session, NOW_MS) == 200


def test_overdue_review_gets_both_boosts(card_factory):
    """An overdue card outranks one that is pinned but not yet due."""
    overdue, pinned = card_factory("x"), card_factory("y")
    state = UserState(
        reviews={
            "x": ReviewItem(stage=0, next_at=NOW_MS - MS_PER_HOUR),
            "y": ReviewItem(stage=0, next_at=NOW_MS + MS_PER_HOUR),
        }
    )
    session = SessionContext()
    assert score_card(overdue, state, session, NOW_MS) == 300 + 40 + 260
    assert score_card(pinned, state, session, NOW_MS) == 300 + 40

    composer = FeedComposer(session)
    result = compose(composer, [pinned, overdue], ListMode.REVIEW, state)
    assert ids(result.items) == ["x", "y"]


# ---------- Filtering ----------


def test_filter_by_mode(cards):
    state = UserState(
        learned={"c00"}, unuseful={"c01"}, favorites={"c02"}, reviews={"c03": ReviewItem(next_at=0)}
    )
    feed_ids = [c.id for c in filter_cards(cards, ListMode.FEED, state)]
    assert "c00" not in feed_ids
    assert "c01" not in feed_ids
    assert len(feed_ids) == 8
    assert [c.id for c in filter_cards(cards, ListMode.LEARNED, state)] == ["c00"]
    assert [c.id for c in filter_cards(cards, ListMode.UNUSEFUL, state)] == ["c01"]
    assert [c.id for c in filter_cards(cards, ListMode.FAVORITES, state)] == ["c02"]
    assert [c.id for c in filter_cards(cards, ListMode.REVIEW, state)] == ["c03"]


# ---------- Ordering ----------


def test_ties_keep_input_order(composer, cards):
    result = compose(composer, cards)
    assert ids(result.items) == [c.id for c in cards]


def test_initial_order_sinks_unuseful_below_learned(composer, cards):
    state = UserState(unuseful={"c00"}, learned={"c01"})
    scored = [(c, score_card(c, state, composer.session, NOW_MS)) for c in cards]
    ordered = [c.id for c in composer.order(scored, ListMode.FEED)]
    assert ordered[-2:] == ["c01", "c00"]


def test_feed_hides_unuseful_and_learned(composer, cards):
    state = UserState(unuseful={"c00"}, learned={"c01"})
    assert ids(compose(composer, cards, state=state).items) == [c.id for c in cards[2:]]


def test_cached_order_survives_toggles(composer, cards):
    first = ids(compose(composer, cards).items)

    # Engagement changes scores, but the cached order stays put.
    composer.session.add_view_duration("c05", 500)
    state = UserState(learned={"c09"})
    second = ids(compose(composer, cards, state=state).items)

    assert second == [cid for cid in first if cid != "c09"]


def test_unknown_ids_go_last_in_cached_order(composer, cards, card_factory):
    compose(composer, cards)
    newcomer = card_factory("new")
    result = compose(composer, [newcomer, *cards])
    assert ids(result.items)[-1] == "new"


def test_invalidate_order_recomputes(composer, cards):
    compose(composer, cards)
    composer.session.add_view_duration("c00", 100)
    composer.session.invalidate_order()
    assert ids(compose(composer, cards).items)[-1] == "c00"


# ---------- System card injection ----------


def view_all(session, count):
    for i in range(count):
        session.record_view(f"c{i:02d}")


def test_injects_support_card_after_enough_views(composer, cards):
    view_all(composer.session, 8)
    result = compose(composer, cards)
    assert result.injected_system_card
    assert isinstance(result.items[8], System)
    assert len(result.items) == 11


def test_injection_happens_once_per_session(composer, cards):
    view_all(composer.session, 8)
    compose(composer, cards)
    again = compose(composer, cards)
    assert not again.injected_system_card
    assert not any(isinstance(i, System) for i in again.items)


def test_no_injection_when_already_shown_today(composer, cards):
    view_all(composer.session, 8)
    assert not compose(composer, cards, injected_today=True).injected_system_card


def test_no_injection_below_threshold(composer, cards):
    view_all(composer.session, 7)
    composer.session.record_view("c00")
    assert not compose(composer, cards).injected_system_card


def test_short_feed_appends_support_card(composer, cards):
    view_all(composer.session, 8)
    result = compose(composer, cards[:3])
    assert isinstance(result.items[-1], System)


def test_no_injection_outside_feed(composer, cards):
    view_all(composer.session, 8)
    state = UserState(favorites={c.id for c in cards})
    result = compose(composer, cards, ListMode.FAVORITES, state)
    assert not result.injected_system_card


# ---------- Daily ----------


def test_daily_composition_shape(composer, cards):
    items = compose(composer, cards, ListMode.DAILY).items
    assert isinstance(items[0], Opening)
    assert isinstance(items[-1], System)
    assert all(isinstance(i, Content) for i in items[1:-1])
    assert len(items) == 6


def test_daily_skips_learned_and_unuseful(composer, cards):
    state = UserState(learned={c.id for c in cards[:5]}, unuseful={c.id for c in cards[5:8]})
    items = compose(composer, cards, ListMode.DAILY, state).items
    assert {i.id for i in items[1:-1]} <= {"c08", "c09"}


def test_daily_with_no_cards_still_frames(composer):
    items = compose(composer, [], ListMode.DAILY).items
    assert [type(i) for i in items] == [Opening, System]
