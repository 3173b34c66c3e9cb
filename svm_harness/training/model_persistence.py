"""
Model persistence module for saving and loading trained SVM models.

Models are stored with joblib; a JSON sidecar next to each model file keeps
human-readable metadata (parameters, class count, sample count, timestamp).
"""

import joblib
import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import PersistenceFailure

logger = logging.getLogger(__name__)


class ModelPersistence:
    """
    Handles saving and loading of trained models and their metadata.
    """

    @staticmethod
    def metadata_path(model_path: Path) -> Path:
        """Path of the JSON metadata sidecar for a model file."""
        model_path = Path(model_path)
        return model_path.with_name(model_path.name + '.json')

    def save(self, model: Any, model_path: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """
        Save a trained model to disk.

        Args:
            model: Trained model
            model_path: Destination file
            metadata: Extra information written to the JSON sidecar

        Returns:
            True on success, False if the model could not be written
        """
        model_path = Path(model_path)
        try:
            # Create the model directory on first save
            model_path.parent.mkdir(parents=True, exist_ok=True)
            # Save model package
            joblib.dump(model, model_path)

            # Save metadata separately for human readability
            sidecar = {'saved_at': datetime.now().isoformat(), **(metadata or {})}
            with open(self.metadata_path(model_path), 'w') as f:
                json.dump(sidecar, f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Could not save model to {model_path}: {e}")
            return False

        logger.info(f"Model saved: {model_path}")
        return True

    def load(self, model_path: str) -> Any:
        """
        Load a previously saved model.

        Args:
            model_path: Path to saved model file

        Returns:
            The loaded model

        Raises:
            PersistenceFailure: If the file is missing, unreadable or not a model
        """
        model_path = Path(model_path)

        if not model_path.exists():
            raise PersistenceFailure(f"Model file not found: {model_path}")

        # Load model package
        try:
            model = joblib.load(model_path)
        except Exception as e:
            raise PersistenceFailure(f"Could not load model from {model_path}: {e}") from e

        # Must be a fitted estimator
        if not hasattr(model, 'predict') or not hasattr(model, 'classes_'):
            raise PersistenceFailure(f"{model_path} does not contain a trained model")

        logger.info(f"Model loaded from {model_path.name}")
        return model

    def load_metadata(self, model_path: str) -> Dict[str, Any]:
        """Read the JSON sidecar of a model file (empty if absent)."""
        sidecar = self.metadata_path(Path(model_path))
        if not sidecar.exists():
            return {}
        with open(sidecar, 'r') as f:
            return json.load(f)
