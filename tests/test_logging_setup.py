import logging

from shared.logging.logging_setup import ColoredFormatter, ColorLogger, CustomFormatter, setup_logging


def _record(level: int, msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("search_gateway", level, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


def test_warning_and_error_are_prefixed_once():
    formatter = CustomFormatter("UTC", "%(message)s")
    record = _record(logging.WARNING, "index %s missing", "docs")

    assert formatter.format(record) == "⚠️ index docs missing"
    # a second handler formats the same record
    assert formatter.format(record) == "⚠️ index docs missing"
    assert formatter.format(_record(logging.ERROR, "boom")) == "⛔ boom"
    assert formatter.format(_record(logging.INFO, "ok")) == "ok"


def test_colored_formatter_wraps_known_colors_only():
    formatter = ColoredFormatter("UTC", "%(message)s")
    assert formatter.format(_record(logging.INFO, "hi", color="green")) == "\033[32mhi\033[0m"
    assert formatter.format(_record(logging.INFO, "hi", color="plaid")) == "hi"


def test_color_logger_passes_color_as_extra(caplog):
    logger = ColorLogger(logging.getLogger("search_gateway.tests.color"))
    with caplog.at_level(logging.INFO, logger="search_gateway.tests.color"):
        logger.info("synced %d", 3, color="cyan")
    assert caplog.records[-1].getMessage() == "synced 3"
    assert caplog.records[-1].color == "cyan"


def test_setup_logging_writes_below_root_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    logger = setup_logging()
    logger.info("hello file")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello file" in (tmp_path / "logs" / "app.log").read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING
