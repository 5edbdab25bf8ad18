import logging

from article_platform.logging_config import configure_logging


def test_configure_logging_installs_console_and_file(tmp_path, monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    configure_logging(log_dir=str(tmp_path), level="DEBUG")
    try:
        assert (tmp_path / "article_platform.log").exists()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        # second call is a no-op
        configure_logging(log_dir=str(tmp_path))
        assert len(root.handlers) == 2
    finally:
        for h in root.handlers:
            h.close()


def test_existing_setup_is_left_alone(tmp_path, monkeypatch):
    root = logging.getLogger()
    existing = logging.NullHandler()
    monkeypatch.setattr(root, "handlers", [existing])
    configure_logging(log_dir=str(tmp_path / "unused"))
    assert root.handlers == [existing]
    assert not (tmp_path / "unused").exists()
