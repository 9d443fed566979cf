import importlib
from types import ModuleType


def get_db_module(db_type: str) -> ModuleType:
    """Load the database backend module for a configured DB type.

    :param db_type: value of DB.TYPE in the config, e.g. "json" or "json_file"
    :return: module exposing db_config_type() and db_from_config()
    """
    try:
        return importlib.import_module(f"mediastash.db.{db_type.lower()}_db")
    except ModuleNotFoundError as e:
        raise ValueError(f"Unknown database type: '{db_type}'") from e


def get_db(db_config):
    """Create a database instance from a validated backend config."""
    return get_db_module(db_config.type).db_from_config(db_config)
