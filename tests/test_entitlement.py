from datetime import timedelta
import uuid

from tunebox.models import DailyPlayLimit, PlayHistory
from tunebox.services.entitlement import EntitlementEngine, PlayReason
from tunebox.services.play_recorder import PlayRecorder
from tunebox.services.settings_store import SettingsStore, StaticSettings


def _engine(clock, **settings):
    return EntitlementEngine(StaticSettings(**settings), clock=clock)


def test_subscription_wins_over_purchase(make_user, make_track, make_purchase, clock):
    user = make_user(subscription_until=clock() + timedelta(days=5))
    track = make_track()
    make_purchase(user, track)

    decision = _engine(clock).evaluate(user.id, track.id)

    assert decision.can_play
    assert decision.reason is PlayReason.subscription
    assert decision.subscription_until == clock() + timedelta(days=5)
    assert decision.to_dict()['reason'] == 'subscription'


def test_expired_subscription_falls_through_to_purchase(make_user, make_track, make_purchase, clock):
    user = make_user(subscription_until=clock())
    track = make_track()
    make_purchase(user, track)

    decision = _engine(clock).evaluate(user.id, track.id)

    assert decision.reason is PlayReason.purchased
    assert decision.remaining_plays is None


def test_purchase_ignores_exhausted_daily_counter(make_user, make_track, make_purchase, clock):
    user = make_user()
    track = make_track()
    engine = _engine(clock, daily_play_limit=1)
    recorder = PlayRecorder(clock=clock)
    recorder.record_granted_play(user.id, track.id, engine.evaluate(user.id, track.id))
    assert engine.evaluate(user.id, track.id).reason is PlayReason.limit_exceeded

    make_purchase(user, track)

    assert engine.evaluate(user.id, track.id).reason is PlayReason.purchased


def test_free_limit_boundary(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    engine = _engine(clock, daily_play_limit=1)

    first = engine.evaluate(user.id, track.id)
    assert first.can_play
    assert first.reason is PlayReason.free_limit
    assert first.remaining_plays == 1

    PlayRecorder(clock=clock).record_granted_play(user.id, track.id, first)

    second = engine.evaluate(user.id, track.id)
    assert not second.can_play
    assert second.reason is PlayReason.limit_exceeded
    assert second.remaining_plays == 0


def test_daily_sequence_with_limit_of_two(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    engine = _engine(clock, daily_play_limit=2)
    recorder = PlayRecorder(clock=clock)

    decision = engine.evaluate(user.id, track.id)
    assert (decision.reason, decision.remaining_plays) == (PlayReason.free_limit, 2)
    recorder.record_granted_play(user.id, track.id, decision)

    decision = engine.evaluate(user.id, track.id)
    assert (decision.reason, decision.remaining_plays) == (PlayReason.free_limit, 1)
    recorder.record_granted_play(user.id, track.id, decision)

    decision = engine.evaluate(user.id, track.id)
    assert decision.reason is PlayReason.limit_exceeded
    assert not decision.can_play


def test_counter_resets_after_reference_midnight(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    engine = _engine(clock, daily_play_limit=3)
    recorder = PlayRecorder(clock=clock)

    clock.now = clock.now.replace(hour=20, minute=30)
    for _ in range(3):
        recorder.record_granted_play(user.id, track.id, engine.evaluate(user.id, track.id))
    assert engine.evaluate(user.id, track.id).reason is PlayReason.limit_exceeded

    # 21:00 UTC is midnight at UTC+3
    clock.advance(minutes=30, seconds=1)
    decision = engine.evaluate(user.id, track.id)

    assert decision.reason is PlayReason.free_limit
    assert decision.remaining_plays == 3


def test_counters_are_per_track(make_user, make_track, clock):
    user = make_user()
    first_track = make_track()
    second_track = make_track(title='Other')
    engine = _engine(clock, daily_play_limit=1)

    PlayRecorder(clock=clock).record_granted_play(
        user.id, first_track.id, engine.evaluate(user.id, first_track.id)
    )

    assert engine.evaluate(user.id, first_track.id).reason is PlayReason.limit_exceeded
    assert engine.evaluate(user.id, second_track.id).remaining_plays == 1


def test_zero_daily_limit_denies_free_plays(make_user, make_track, clock):
    user = make_user()
    track = make_track()

    decision = _engine(clock, daily_play_limit=0).evaluate(user.id, track.id)

    assert decision.reason is PlayReason.limit_exceeded


def test_limit_lowered_below_current_count_reports_zero(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    recorder = PlayRecorder(clock=clock)
    generous = _engine(clock, daily_play_limit=5)
    for _ in range(3):
        recorder.record_granted_play(user.id, track.id, generous.evaluate(user.id, track.id))

    decision = _engine(clock, daily_play_limit=2).evaluate(user.id, track.id)

    assert decision.reason is PlayReason.limit_exceeded
    assert decision.remaining_plays == 0


def test_unknown_user_is_denied(make_track, clock):
    track = make_track()

    decision = _engine(clock).evaluate(uuid.uuid4(), track.id)

    assert not decision.can_play
    assert decision.reason is PlayReason.limit_exceeded


def test_evaluate_has_no_side_effects(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    engine = _engine(clock, daily_play_limit=2)

    for _ in range(5):
        assert engine.evaluate(user.id, track.id).remaining_plays == 2

    assert DailyPlayLimit.query.count() == 0
    assert PlayHistory.query.count() == 0


def test_engine_reads_limit_from_settings_table(make_user, make_track, set_setting, clock):
    user = make_user()
    track = make_track()
    set_setting('daily_play_limit', 4)

    decision = EntitlementEngine(SettingsStore(), clock=clock).evaluate(user.id, track.id)

    assert decision.remaining_plays == 4
