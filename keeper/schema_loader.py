"""
JSON Schemas for realtime payloads (keeper/schemas/*.json), checked and
compiled once at import.
"""
import json
import logging
import os

from jsonschema import Draft7Validator, SchemaError
from jsonschema.exceptions import best_match

logger = logging.getLogger(__name__)

SCHEMA_DIR = os.path.join(os.path.dirname(__file__), "schemas")
SCHEMAS = {}
VALIDATORS = {}


def load_schemas(directory=SCHEMA_DIR):
    logger.info("Loading schemas from %s", directory)
    for filename in sorted(os.listdir(directory)):
        if not filename.endswith(".json"):
            continue
        schema_name = filename[: -len(".json")]
        try:
            with open(os.path.join(directory, filename), "r") as f:
                schema = json.load(f)
            Draft7Validator.check_schema(schema)
        except (OSError, ValueError, SchemaError) as e:
            logger.error("Failed to load %s: %s", filename, e)
            continue
        SCHEMAS[schema_name] = schema
        VALIDATORS[schema_name] = Draft7Validator(schema)
        logger.debug("Loaded schema: %s", schema_name)


def validate_data(data, schema_name):
    """Returns True when valid, otherwise the most relevant validation message."""
    if schema_name not in VALIDATORS:
        logger.warning("Schema '%s' not found", schema_name)
        raise ValueError(f"Schema '{schema_name}' not found.")

    error = best_match(VALIDATORS[schema_name].iter_errors(data))
    if error is None:
        return True
    logger.warning("Validation failed for schema '%s': %s", schema_name, error.message)
    return error.message


# Load schemas on import
load_schemas()
