import json
import sys
from unittest.mock import Mock

from loguru import logger

from billing_sync.core.logging import configure_logging


def test_file_sink_serializes_bound_event(tmp_path):
    """Verifica que con LOG_JSON los eventos del sync salen como JSON con sus extras."""
    log_file = tmp_path / "sync.log"
    settings = Mock(LOG_LEVEL="INFO", LOG_JSON=True, LOG_FILE=str(log_file))

    configure_logging(settings)
    try:
        logger.bind(event="record_failed", entity="invoice", entity_id="in_1").error("Registro omitido")
        logger.complete()
    finally:
        logger.remove()
        logger.add(sys.stderr)

    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    record = json.loads(line)["record"]
    assert record["extra"] == {"event": "record_failed", "entity": "invoice", "entity_id": "in_1"}
    assert record["level"]["name"] == "ERROR"
