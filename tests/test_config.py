import logging
from pathlib import Path

import pytest

from svm_harness.utils import Config, load_config, setup_logging, setup_logging_from_config

REPO_CONFIG = Path(__file__).resolve().parent.parent / 'config.yaml'


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_repository_config_loads():
    config = load_config(str(REPO_CONFIG))

    assert config.data['seed'] == 42
    assert config.solver['parameters']['kernel'] == 'rbf'
    assert config.grid_search['c']['steps'] >= 2
    assert 'logging' in config.system


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / 'missing.yaml'))


def test_yaml_sections_and_defaults(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text("data:\n  seed: 5\noutput:\n")

    config = load_config(str(path))

    assert config.data == {'seed': 5}
    assert config.output == {}
    assert config.get('absent', 'fallback') == 'fallback'


def test_in_memory_config_and_overrides():
    config = Config(None, values={'data': {'seed': 1}})
    config.set('data', 'seed', 9)
    config.set('persistence', 'model_path', 'model.bin')

    assert config.data['seed'] == 9
    assert config.persistence == {'model_path': 'model.bin'}


def test_setup_logging_writes_file(tmp_path, restore_root_logger):
    log_file = tmp_path / 'logs' / 'harness.log'
    setup_logging(level='DEBUG', log_file=str(log_file), console_output=False)

    logging.getLogger('svm_harness.test').debug("written to file")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert 'written to file' in log_file.read_text()


def test_setup_logging_rejects_bad_level(restore_root_logger):
    with pytest.raises(ValueError):
        setup_logging(level='LOUD')


def test_verbose_forces_debug(restore_root_logger):
    logger = setup_logging_from_config({'logging': {'level': 'WARNING', 'color': False}}, verbose=True)
    assert logger.level == logging.DEBUG
