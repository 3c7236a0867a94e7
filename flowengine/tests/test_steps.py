import asyncio
from datetime import datetime, timedelta

import pytest

from flowengine.steps import InMemoryStepLedger, SqlStepLedger, StepRuntime


def test_step_runs_once_per_run_key():
    ledger = InMemoryStepLedger()
    calls = []

    def work():
        calls.append(1)
        return {'value': len(calls)}

    first = StepRuntime(ledger, 'run-1')
    assert asyncio.run(first.run('n1:http-request', work)) == {'value': 1}

    # a retried attempt builds a fresh runtime over the same ledger
    second = StepRuntime(ledger, 'run-1')
    assert asyncio.run(second.run('n1:http-request', work)) == {'value': 1}
    assert calls == [1]
    assert second.replayed == ['n1:http-request']
    assert second.executed == []


def test_step_results_are_scoped_by_run_key():
    ledger = InMemoryStepLedger()
    counter = {'n': 0}

    def work():
        counter['n'] += 1
        return counter['n']

    assert asyncio.run(StepRuntime(ledger, 'run-a').run('s', work)) == 1
    assert asyncio.run(StepRuntime(ledger, 'run-b').run('s', work)) == 2


def test_failed_step_is_not_recorded():
    ledger = InMemoryStepLedger()

    def boom():
        raise RuntimeError('network down')

    with pytest.raises(RuntimeError):
        asyncio.run(StepRuntime(ledger, 'run-1').run('s', boom))
    assert len(ledger) == 0
    assert asyncio.run(StepRuntime(ledger, 'run-1').run('s', lambda: 'ok')) == 'ok'


def test_step_accepts_coroutine_functions():
    async def work():
        await asyncio.sleep(0)
        return [1, 2]

    assert asyncio.run(StepRuntime(InMemoryStepLedger(), 'r').run('s', work)) == [1, 2]


def test_recorded_result_is_a_copy():
    ledger = InMemoryStepLedger()
    out = asyncio.run(StepRuntime(ledger, 'r').run('s', lambda: {'k': [1]}))
    out['k'].append(2)
    assert ledger.get('r', 's') == {'k': [1]}


def test_sql_ledger_persists_and_keeps_first_writer(session_factory):
    ledger = SqlStepLedger(session_factory)
    assert ledger.put('run-1', 'step', {'a': 1}) == {'a': 1}
    assert ledger.put('run-1', 'step', {'a': 2}) == {'a': 1}
    assert ledger.get('run-1', 'step') == {'a': 1}
    assert ledger.get('run-1', 'missing', None) is None

    calls = []
    runtime = StepRuntime(SqlStepLedger(session_factory), 'run-1')
    assert asyncio.run(runtime.run('step', lambda: calls.append(1))) == {'a': 1}
    assert calls == []

    ledger.clear('run-1')
    assert ledger.get('run-1', 'step', None) is None


def test_sleep_waits_only_for_the_remainder(monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr('flowengine.steps.asyncio.sleep', fake_sleep)
    now = {'t': datetime(2024, 1, 1, 12, 0, 0)}
    ledger = InMemoryStepLedger()

    asyncio.run(StepRuntime(ledger, 'r', clock=lambda: now['t']).sleep('pause', 10))
    assert waits == [10.0]

    # retried attempt four seconds later resumes the same sleep
    now['t'] += timedelta(seconds=4)
    asyncio.run(StepRuntime(ledger, 'r', clock=lambda: now['t']).sleep('pause', 10))
    assert waits == [10.0, 6.0]

    # once the wake-up time has passed the sleep is skipped
    now['t'] += timedelta(seconds=30)
    asyncio.run(StepRuntime(ledger, 'r', clock=lambda: now['t']).sleep('pause', timedelta(seconds=10)))
    assert waits == [10.0, 6.0]


def test_sleep_name_clash_with_regular_step():
    ledger = InMemoryStepLedger()
    asyncio.run(StepRuntime(ledger, 'r').run('shared', lambda: 'value'))
    with pytest.raises(ValueError):
        asyncio.run(StepRuntime(ledger, 'r').sleep('shared', 1))
