import json

from pydantic import Field

from mediastash.db.db import DBConfig
from mediastash.db.json_db import Json


def db_config_type():
    return JsonFileDbConfig


class JsonFileDbConfig(DBConfig):
    path: str = Field(alias="PATH")


def db_from_config(config: JsonFileDbConfig):
    return JsonFile(config.path)


class JsonFile(Json):
    def __init__(self, path: str):
        self.data_file_path = path
        with open(self.data_file_path) as json_file:
            data = json.load(json_file)
            super().__init__(data)
        self.module_name = "json_file_db"
        self.db_name = "JsonFileDb"

    def reload(self) -> None:
        """Re-read the library from the file, picking up added or removed items."""
        with open(self.data_file_path) as json_file:
            self.data = json.load(json_file)

    def health_check(self) -> None:
        """Re-read the library file; raises if it is missing or no longer valid JSON."""
        self.reload()
        super().health_check()
