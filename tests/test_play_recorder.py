from concurrent.futures import ThreadPoolExecutor
from datetime import date

from tunebox.extensions.extension import db
from tunebox.models import DailyPlayLimit, PlayHistory, Track
from tunebox.services.entitlement import PlayDecision, PlayReason
from tunebox.services.play_recorder import PlayRecorder

FREE_PLAY = PlayDecision(can_play=True, reason=PlayReason.free_limit, remaining_plays=1)
SUBSCRIBED_PLAY = PlayDecision(can_play=True, reason=PlayReason.subscription)
PURCHASED_PLAY = PlayDecision(can_play=True, reason=PlayReason.purchased)


def _counter(user_id, track_id):
    return DailyPlayLimit.query.filter_by(user_id=user_id, track_id=track_id).all()


def test_free_play_updates_counter_history_and_track(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    recorder = PlayRecorder(clock=clock)

    recorder.record_granted_play(user.id, track.id, FREE_PLAY)
    recorder.record_granted_play(user.id, track.id, FREE_PLAY)

    counters = _counter(user.id, track.id)
    assert len(counters) == 1
    assert counters[0].play_count == 2
    assert counters[0].date == date(2024, 3, 10)
    assert PlayHistory.query.filter_by(user_id=user.id, track_id=track.id).count() == 2
    assert db.session.get(Track, track.id).play_count == 2


def test_unlimited_plays_never_touch_the_counter(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    recorder = PlayRecorder(clock=clock)

    recorder.record_granted_play(user.id, track.id, SUBSCRIBED_PLAY)
    recorder.record_granted_play(user.id, track.id, PURCHASED_PLAY)

    assert _counter(user.id, track.id) == []
    assert PlayHistory.query.filter_by(user_id=user.id).count() == 2
    assert db.session.get(Track, track.id).play_count == 2


def test_counter_rows_are_keyed_by_reference_day(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    recorder = PlayRecorder(clock=clock)

    clock.now = clock.now.replace(hour=20, minute=59)
    recorder.record_granted_play(user.id, track.id, FREE_PLAY)
    clock.advance(minutes=2)
    recorder.record_granted_play(user.id, track.id, FREE_PLAY)

    days = sorted(row.date for row in _counter(user.id, track.id))
    assert days == [date(2024, 3, 10), date(2024, 3, 11)]


def test_concurrent_free_plays_lose_no_increments(app, make_user, make_track, clock):
    user_id = make_user().id
    track_id = make_track().id
    db.session.remove()

    def play_once(_):
        with app.app_context():
            PlayRecorder(clock=clock).record_granted_play(user_id, track_id, FREE_PLAY)

    with ThreadPoolExecutor(max_workers=10) as pool:
        list(pool.map(play_once, range(50)))

    counters = _counter(user_id, track_id)
    assert len(counters) == 1
    assert counters[0].play_count == 50
    assert db.session.get(Track, track_id).play_count == 50
    assert PlayHistory.query.filter_by(user_id=user_id).count() == 50


def test_completion_marks_latest_play(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    recorder = PlayRecorder(clock=clock)
    first = recorder.record_granted_play(user.id, track.id, SUBSCRIBED_PLAY)
    first_id = first.id
    clock.advance(minutes=5)
    second = recorder.record_granted_play(user.id, track.id, SUBSCRIBED_PLAY)
    second_id = second.id

    completed = recorder.record_completion(user.id, track.id)

    assert completed.id == second_id
    assert db.session.get(PlayHistory, second_id).completed is True
    assert db.session.get(PlayHistory, first_id).completed is False


def test_completion_without_play_is_a_noop(make_user, make_track):
    user = make_user()
    track = make_track()

    assert PlayRecorder().record_completion(user.id, track.id) is None
    assert PlayHistory.query.count() == 0


def test_completion_only_looks_at_the_same_track(make_user, make_track, clock):
    user = make_user()
    played = make_track()
    other = make_track(title='Unplayed')
    recorder = PlayRecorder(clock=clock)
    recorder.record_granted_play(user.id, played.id, FREE_PLAY)

    assert recorder.record_completion(user.id, other.id) is None
    assert PlayHistory.query.filter_by(completed=True).count() == 0


def test_history_uses_the_clock(make_user, make_track, clock):
    user = make_user()
    track = make_track()
    clock.advance(hours=1)

    entry = PlayRecorder(clock=clock).record_granted_play(user.id, track.id, PURCHASED_PLAY)

    assert db.session.get(PlayHistory, entry.id).played_at == clock()
