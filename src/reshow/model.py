from __future__ import annotations

from typing import ClassVar, Type, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict

C = TypeVar("C", bound="Model")


class Model(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @classmethod
    def model_validate_yaml(cls: Type[C], y: str) -> C:
        return cls.model_validate(yaml.safe_load(y) or {})

    def model_dump_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(mode="json"), sort_keys=False)
