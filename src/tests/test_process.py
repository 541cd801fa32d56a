import logging
import sys
import time

from utils.process import run_bounded


def test_captures_output_and_exit_code():
    result = run_bounded([
        sys.executable, "-c",
        "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)",
    ], timeout=30)
    assert result.exit_code == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.timed_out is False


def test_kills_process_that_never_exits():
    start = time.monotonic()
    result = run_bounded([sys.executable, "-c", "import time; time.sleep(60)"], timeout=0.5)
    elapsed = time.monotonic() - start

    assert result.timed_out is True
    assert result.exit_code != 0
    assert elapsed < 10


def test_keeps_partial_output_on_timeout():
    result = run_bounded([
        sys.executable, "-c",
        "import sys, time; print('started', flush=True); time.sleep(60)",
    ], timeout=1)
    assert result.timed_out is True
    assert "started" in result.stdout


def test_missing_command():
    result = run_bounded(["definitely-not-a-real-binary-xyz"], timeout=5)
    assert result.exit_code == 127
    assert "Command not found" in result.stderr
    assert result.timed_out is False


def test_env_is_merged():
    result = run_bounded(
        [sys.executable, "-c", "import os; print(os.environ['SCAN_TEST_VALUE'])"],
        timeout=30,
        env={"SCAN_TEST_VALUE": "hello"},
    )
    assert result.exit_code == 0
    assert result.stdout.strip() == "hello"


def test_timeout_is_logged_on_root_logger(caplog):
    with caplog.at_level(logging.WARNING):
        run_bounded([sys.executable, "-c", "import time; time.sleep(60)"], timeout=0.3)
    records = [r for r in caplog.records if "timed out" in r.getMessage()]
    assert len(records) == 1
    assert records[0].name == "root"
    assert records[0].levelno == logging.WARNING
