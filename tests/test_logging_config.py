import logging

from particle_life.logging_config import LOGGER_NAME, setup_logging


def teardown_function():
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_console_only():
    logger = setup_logging("debug")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert not logger.propagate


def test_file_handler_and_no_duplicates(tmp_path):
    log_file = tmp_path / "logs" / "sim.log"
    setup_logging("INFO", str(log_file))
    logger = setup_logging("INFO", str(log_file))
    assert len(logger.handlers) == 2

    logging.getLogger(f"{LOGGER_NAME}.simulation").info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
