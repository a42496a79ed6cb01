import asyncio
import logging
import subprocess
import sys
import textwrap
import threading

import pytest

from orm_hook.infrastructure import completion as completion_module
from orm_hook.infrastructure.completion import FATAL_EXIT_CODE, Completion


def test_first_call_is_forwarded_once() -> None:
    calls = []
    completion = Completion(calls.append)

    completion()

    assert calls == [None]
    assert completion.fired


def test_first_error_is_forwarded() -> None:
    calls = []
    completion = Completion(calls.append)
    err = RuntimeError('boom')

    completion(err)

    assert calls == [err]


def test_second_success_only_warns(caplog: pytest.LogCaptureFixture) -> None:
    calls = []
    completion = Completion(calls.append)
    completion()

    with caplog.at_level(logging.WARNING):
        completion()

    assert calls == [None]
    assert any(r.levelno == logging.WARNING and 'called again' in r.getMessage() for r in caplog.records)


def test_second_error_is_raised(caplog: pytest.LogCaptureFixture) -> None:
    calls = []
    completion = Completion(calls.append)
    completion()
    late = ConnectionResetError('connection dropped')

    with caplog.at_level(logging.ERROR), pytest.raises(ConnectionResetError) as excinfo:
        completion(late)

    assert excinfo.value is late
    assert calls == [None]
    assert [r.levelno for r in caplog.records].count(logging.ERROR) == 2


def test_second_error_after_first_error_is_raised() -> None:
    completion = Completion(lambda err: None)
    completion(ValueError('first'))

    with pytest.raises(ValueError, match='second'):
        completion(ValueError('second'))


def test_future_holds_first_outcome() -> None:
    async def scenario():
        completion = Completion(loop=asyncio.get_running_loop())
        completion()
        completion()
        await completion.future
        return completion.future.result()

    assert asyncio.run(scenario()) is None


def test_future_holds_first_error() -> None:
    async def scenario():
        completion = Completion(loop=asyncio.get_running_loop())
        completion(KeyError('identity'))
        await completion.future

    with pytest.raises(KeyError):
        asyncio.run(scenario())


def test_call_from_another_thread_settles_future() -> None:
    calls = []

    async def scenario():
        completion = Completion(calls.append, loop=asyncio.get_running_loop())
        threads = [threading.Thread(target=completion) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        await asyncio.wait_for(completion.future, timeout=5)

    asyncio.run(scenario())

    assert calls == [None]


@pytest.fixture
def aborts(monkeypatch: pytest.MonkeyPatch):
    calls = []
    monkeypatch.setattr(completion_module, '_abort', calls.append)
    return calls


def test_late_error_from_a_thread_exits(aborts) -> None:
    completion = Completion(lambda err: None)
    completion()
    late = ConnectionResetError('heartbeat failed')

    thread = threading.Thread(target=completion, args=(late,))
    thread.start()
    thread.join()

    assert aborts == [late]


def test_late_error_from_a_loop_callback_exits(aborts) -> None:
    late = ConnectionResetError('heartbeat failed')

    async def scenario():
        completion = Completion(lambda err: None)
        completion()
        asyncio.get_running_loop().call_soon(completion, late)
        await asyncio.sleep(0)

    asyncio.run(scenario())

    assert aborts == [late]


def test_late_success_from_a_thread_does_not_exit(aborts) -> None:
    completion = Completion(lambda err: None)
    completion()

    thread = threading.Thread(target=completion)
    thread.start()
    thread.join()

    assert aborts == []


def test_late_error_from_a_loop_callback_ends_the_process() -> None:
    script = textwrap.dedent("""
        import asyncio
        from orm_hook.infrastructure.completion import Completion

        async def main():
            completion = Completion(lambda err: None)
            completion()
            asyncio.get_running_loop().call_soon(completion, ConnectionResetError('late'))
            await asyncio.sleep(0.2)
            print('still running')

        asyncio.run(main())
    """)

    result = subprocess.run([sys.executable, '-c', script], capture_output=True, text=True, timeout=60)

    assert result.returncode == FATAL_EXIT_CODE
    assert 'still running' not in result.stdout


def test_error_reported_through_callback_is_marked_retrieved() -> None:
    async def scenario():
        completion = Completion(lambda err: None, loop=asyncio.get_running_loop())
        completion(KeyError('identity'))
        return completion.future

    future = asyncio.run(scenario())

    assert isinstance(future.exception(), KeyError)
    assert future._log_traceback is False
