import yaml
from pydantic import ValidationError
from typing import Dict, Any

from services.harmonic_engine.models import HarmonicCatalog


class CatalogValidationError(ValueError):
    """Custom exception for catalog validation errors not covered by Pydantic."""
    pass


def load_catalog_data(data: Dict[str, Any]) -> HarmonicCatalog:
    """
    Validates the raw dictionary data against the HarmonicCatalog model
    and performs additional custom validations.
    """
    try:
        catalog = HarmonicCatalog.model_validate(data)
    except ValidationError as e:
        raise CatalogValidationError(f"Invalid harmonic catalog: {e}") from e

    state_ids = set()
    for state in catalog.states:
        if state.id in state_ids:
            raise CatalogValidationError(f"Duplicate harmonic state ID found: {state.id}")
        state_ids.add(state.id)

    question_ids = set()
    for question in catalog.questions:
        if question.id in question_ids:
            raise CatalogValidationError(f"Duplicate question ID found: {question.id}")
        question_ids.add(question.id)

        if question.harmonic_state not in state_ids:
            raise CatalogValidationError(
                f"Question '{question.id}' references unknown harmonic state '{question.harmonic_state}'"
            )

    return catalog


def load_catalog_from_file(file_path: str) -> HarmonicCatalog:
    """
    Loads the harmonic state catalog from a YAML file, validates it,
    and returns a HarmonicCatalog object.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise CatalogValidationError(f"File not found: {file_path}")
    except yaml.YAMLError as e:
        raise CatalogValidationError(f"Error parsing YAML file {file_path}: {e}")

    if data is None:
        raise CatalogValidationError(f"YAML file is empty or invalid: {file_path}")

    return load_catalog_data(data)
