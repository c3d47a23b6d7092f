"""
Pydantic-based schema validation for mplens configuration files.

Goals
- Catch unknown or misspelled keys early
- Accept both snake_case and the camelCase spellings of mp-lens.config.json
- Normalise comma-separated strings into lists
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return value


class ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    version: Optional[str] = None
    miniapp_root: Optional[str] = Field(None, validation_alias=AliasChoices("miniapp_root", "miniappRoot"))
    entry_file: Optional[str] = Field(
        None, validation_alias=AliasChoices("entry_file", "entryFile", "appJsonPath")
    )
    entry_content: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("entry_content", "entryContent", "appJsonContent")
    )
    types: Optional[List[str]] = None
    exclude: Optional[List[str]] = None
    essential_files: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("essential_files", "essentialFiles")
    )
    include_assets: Optional[bool] = Field(None, validation_alias=AliasChoices("include_assets", "includeAssets"))
    keep_assets: Optional[List[str]] = Field(None, validation_alias=AliasChoices("keep_assets", "keepAssets"))
    aliases: Optional[Dict[str, Union[str, List[str]]]] = None

    @field_validator("types", "exclude", "essential_files", "keep_assets", mode="before")
    @classmethod
    def _comma_separated(cls, value: Any) -> Any:
        return _split_list(value)

    @field_validator("types")
    @classmethod
    def _strip_dots(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return [t.strip().lstrip(".") for t in value if t.strip()]

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_str(cls, value: Any) -> Any:
        return None if value is None else str(value)


def validate_config_data(data: Dict[str, Any]) -> ConfigFileModel:
    """Validate loaded config data.

    Raises:
        pydantic.ValidationError (a ``ValueError``) on unknown keys or bad types.
    """
    return ConfigFileModel.model_validate(data)
