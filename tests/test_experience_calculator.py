from bingo.calculators.interface import CalculatorContext
from bingo.calculators.registry import calculate_progress
from bingo.events.unified import EventType, SessionData
from bingo.requirements.types import requirement_from_dict
from tests.conftest import T0, FakeRanking, make_event

REQ = requirement_from_dict({'type': 'EXPERIENCE', 'skill': 'Fishing', 'experience': 100_000})


def _ctx(event, ranking):
    return CalculatorContext.for_event(event, event_start=T0, ranking=ranking)


def test_gain_is_measured_from_snapshot_at_event_start():
    ranking = FakeRanking(
        current={('Zezima', 'fishing'): 1_060_000},
        baseline={('Zezima', 'fishing'): 1_000_000},
    )
    event = make_event(EventType.LOGOUT, SessionData(), minutes=60)
    result = calculate_progress(event, REQ, None, _ctx(event, ranking))

    assert result.progress_value == 60_000
    assert result.is_completed is False
    [contribution] = result.progress_metadata['playerContributions']
    assert contribution['baselineXp'] == 1_000_000
    assert contribution['currentXp'] == 1_060_000
    assert result.progress_metadata['skill'] == 'fishing'


def test_baseline_is_captured_once_and_team_gains_add_up():
    ranking = FakeRanking(
        current={('Zezima', 'fishing'): 1_060_000, ('Lynx', 'fishing'): 530_000},
        baseline={('Zezima', 'fishing'): 1_000_000, ('Lynx', 'fishing'): 500_000},
    )
    first = make_event(EventType.LOGOUT, SessionData(), minutes=60)
    r1 = calculate_progress(first, REQ, None, _ctx(first, ranking))

    ranking.current[('Zezima', 'fishing')] = 1_070_000
    ranking.baseline[('Zezima', 'fishing')] = 999  # must not be consulted again
    second = make_event(EventType.LOGOUT, SessionData(), minutes=90)
    r2 = calculate_progress(second, REQ, r1.as_existing(), _ctx(second, ranking))

    third = make_event(EventType.LOGIN, SessionData(), player='Lynx', account_id=2, minutes=95)
    r3 = calculate_progress(third, REQ, r2.as_existing(), _ctx(third, ranking))

    assert r2.progress_value == 70_000
    assert r3.progress_value == 100_000
    assert r3.is_completed is True
    assert ranking.baseline_calls == 2


def test_missing_baseline_seeds_from_current():
    ranking = FakeRanking(current={('Zezima', 'fishing'): 2_000_000})
    event = make_event(EventType.LOGIN, SessionData())
    result = calculate_progress(event, REQ, None, _ctx(event, ranking))
    assert result.progress_value == 0
    assert result.progress_metadata['playerContributions'][0]['baselineXp'] == 2_000_000


def test_ranking_failure_returns_previous_result_unchanged():
    ranking = FakeRanking(
        current={('Zezima', 'fishing'): 1_050_000},
        baseline={('Zezima', 'fishing'): 1_000_000},
    )
    first = make_event(EventType.LOGOUT, SessionData())
    before = calculate_progress(first, REQ, None, _ctx(first, ranking))

    ranking.fail = True
    later = make_event(EventType.LOGOUT, SessionData(), minutes=30)
    after = calculate_progress(later, REQ, before.as_existing(), _ctx(later, ranking))

    assert after.progress_value == before.progress_value
    assert after.progress_metadata == before.progress_metadata


def test_baseline_failure_defers_capture_to_a_later_event():
    ranking = FakeRanking(
        current={('Zezima', 'fishing'): 1_010_000},
        baseline={('Zezima', 'fishing'): 1_000_000},
        fail_baseline=True,
    )
    first = make_event(EventType.LOGOUT, SessionData())
    r1 = calculate_progress(first, REQ, None, _ctx(first, ranking))

    assert r1.progress_value == 0
    assert r1.progress_metadata['lastUpdateAt'] is None
    assert r1.progress_metadata['playerContributions'] == []

    ranking.fail_baseline = False
    ranking.current[('Zezima', 'fishing')] = 1_060_000
    second = make_event(EventType.LOGOUT, SessionData(), minutes=30)
    r2 = calculate_progress(second, REQ, r1.as_existing(), _ctx(second, ranking))

    assert r2.progress_value == 60_000
    [contribution] = r2.progress_metadata['playerContributions']
    assert contribution['baselineXp'] == 1_000_000
    assert ranking.baseline_calls == 2


def test_unknown_player_without_existing_progress_is_zero_placeholder():
    event = make_event(EventType.LOGOUT, SessionData(), player='Nobody')
    result = calculate_progress(event, REQ, None, _ctx(event, FakeRanking()))
    assert result.progress_value == 0
    assert result.is_completed is False
    assert result.progress_metadata['lastUpdateAt'] is None


def test_progress_never_decreases():
    ranking = FakeRanking(
        current={('Zezima', 'fishing'): 1_080_000},
        baseline={('Zezima', 'fishing'): 1_000_000},
    )
    first = make_event(EventType.LOGOUT, SessionData())
    r1 = calculate_progress(first, REQ, None, _ctx(first, ranking))

    # a stale ranking snapshot reports less XP than last time
    ranking.current[('Zezima', 'fishing')] = 1_040_000
    second = make_event(EventType.LOGOUT, SessionData(), minutes=5)
    r2 = calculate_progress(second, REQ, r1.as_existing(), _ctx(second, ranking))
    assert r2.progress_value == 80_000
