import json

import structlog

from logging_config import configure_logging


def test_events_are_written_as_json_lines(tmp_path):
    log_path = tmp_path / "logs" / "tablescope.log"
    stream = configure_logging(str(log_path), level="info")
    try:
        logger = structlog.get_logger("tablescope.test")
        logger.debug("hidden_event")
        logger.info("dataset_materialized", rows=3)
    finally:
        stream.close()
        structlog.reset_defaults()

    lines = log_path.read_text().splitlines()
    assert len(lines) == 1
    event = json.loads(lines[0])
    assert event["event"] == "dataset_materialized"
    assert event["rows"] == 3
    assert event["level"] == "info"
    assert "timestamp" in event
