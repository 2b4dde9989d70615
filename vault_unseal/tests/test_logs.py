import io
import json
import sys

import pytest
from loguru import logger

from vault_unseal.constants import LogLevel
from vault_unseal.logs import init_log


@pytest.fixture
def sink():
    sink = io.StringIO()
    yield sink
    logger.remove()
    logger.add(sys.stderr)


def test_json_records_name_the_node(sink):
    init_log(LogLevel.DEBUG, as_json=True, sink=sink)

    logger.bind(node="http://vault-0:8200").info("vault is sealed")

    record = json.loads(sink.getvalue().splitlines()[-1])
    assert record["record"]["extra"]["node"] == "http://vault-0:8200"
    assert record["record"]["message"] == "vault is sealed"


def test_level_filter(sink):
    init_log(LogLevel.WARN, sink=sink)

    logger.info("hidden")
    logger.warning("shown")

    output = sink.getvalue()
    assert "hidden" not in output
    assert "shown" in output
    # records without a bound node still format
    assert " - shown" in output
