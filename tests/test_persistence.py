import joblib
import numpy as np
import pytest

from svm_harness.errors import PersistenceFailure
from svm_harness.training import ModelPersistence, SVMParameters


@pytest.fixture
def trained_model(solver, binary_problem):
    return solver.train(binary_problem, SVMParameters())


def test_round_trip_keeps_predictions(tmp_path, solver, binary_problem, trained_model):
    persistence = ModelPersistence()
    path = tmp_path / 'nested' / 'svm.model'

    assert persistence.save(trained_model, path, {'class_count': 2})
    loaded = persistence.load(path)

    np.testing.assert_array_equal(solver.predict_problem(loaded, binary_problem),
                                  solver.predict_problem(trained_model, binary_problem))
    assert solver.class_count(loaded) == 2


def test_metadata_sidecar(tmp_path, trained_model):
    persistence = ModelPersistence()
    path = tmp_path / 'svm.model'
    persistence.save(trained_model, path, {'class_count': 2, 'parameters': {'C': 1.0}})

    assert persistence.metadata_path(path).name == 'svm.model.json'
    metadata = persistence.load_metadata(path)
    assert metadata['class_count'] == 2
    assert metadata['parameters'] == {'C': 1.0}
    assert 'saved_at' in metadata


def test_missing_metadata_is_empty(tmp_path):
    assert ModelPersistence().load_metadata(tmp_path / 'absent.model') == {}


def test_missing_model_file(tmp_path):
    with pytest.raises(PersistenceFailure):
        ModelPersistence().load(tmp_path / 'absent.model')


def test_corrupt_model_file(tmp_path):
    path = tmp_path / 'corrupt.model'
    path.write_bytes(b'this is not a model')
    with pytest.raises(PersistenceFailure):
        ModelPersistence().load(path)


def test_file_without_model(tmp_path):
    path = tmp_path / 'dict.model'
    joblib.dump({'not': 'a model'}, path)
    with pytest.raises(PersistenceFailure):
        ModelPersistence().load(path)


def test_unwritable_destination_reports_failure(tmp_path, trained_model):
    blocker = tmp_path / 'blocker'
    blocker.write_text('file in the way')

    assert ModelPersistence().save(trained_model, blocker / 'svm.model') is False
