import io
import logging

from wormremoval.logging_config import get_logger, log_timing, setup_logging


def test_setup_once_to_stream():
    name = "WormRemovalTest"
    out = io.StringIO()
    logger = setup_logging(app_name=name, stream=out)
    try:
        assert setup_logging(app_name=name) is logger
        assert len(logger.handlers) == 1

        get_logger(f"{name}.pipeline").info("Starting StarXTerminator (starless)!")
        get_logger(f"{name}.pipeline").debug("skipping nonstellar")
        text = out.getvalue()
        assert "Starting StarXTerminator (starless)!" in text
        assert "skipping nonstellar" not in text
        # StringIO is not a tty: no color codes
        assert "\033[" not in text
    finally:
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()


def test_log_timing_reraises(caplog):
    log = get_logger("WormRemoval.test")
    with caplog.at_level(logging.DEBUG, logger="WormRemoval.test"):
        try:
            with log_timing("run", log):
                raise ValueError("boom")
        except ValueError:
            pass
        else:
            raise AssertionError("exception swallowed")
    assert any("Failed: run" in r.getMessage() for r in caplog.records)


def test_log_timing_reports_completion(caplog):
    log = get_logger("WormRemoval.test")
    with caplog.at_level(logging.DEBUG, logger="WormRemoval.test"):
        with log_timing("Worm removal", log):
            pass
    messages = [r.getMessage() for r in caplog.records]
    assert messages[0] == "Starting: Worm removal"
    assert messages[-1].startswith("Completed: Worm removal in ")
