"""
JSON Schema Contract Validators

Валидация сериализованных результатов движка против contracts/schema/:
- vault_snapshot.json (query-поверхность: состав vault и держатели)
- settlement.json (результаты deposit / withdraw / swap и инструкции custody)

Схема проходит meta-валидацию Draft 2020-12 при первой загрузке и кэшируется.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator

# Корень проекта: 4 уровня вверх от этого файла
SCHEMA_DIR: Path = Path(__file__).parent.parent.parent.parent / "contracts" / "schema"


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> Dict[str, Any]:
    """
    Загрузка JSON Schema по имени без расширения.

    Raises:
        FileNotFoundError: Если файл схемы не найден
        ValueError: Если схема не проходит meta-валидацию
    """
    schema_path = SCHEMA_DIR / f"{schema_name}.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")

    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)

    try:
        Draft202012Validator.check_schema(schema)
    except jsonschema.SchemaError as e:
        raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

    return schema


@lru_cache(maxsize=None)
def _compiled(schema_name: str) -> Draft202012Validator:
    return Draft202012Validator(load_schema(schema_name))


class ContractValidator:
    """Валидатор одного контракта; подкласс задаёт schema_name."""

    schema_name: ClassVar[str]

    def __init__(self) -> None:
        self.validator = _compiled(self.schema_name)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[jsonschema.ValidationError]:
        return self.validator.iter_errors(data)


class VaultSnapshotValidator(ContractValidator):
    schema_name = "vault_snapshot"


class SettlementValidator(ContractValidator):
    schema_name = "settlement"


def validate_vault_snapshot(data: Dict[str, Any]) -> None:
    """Валидация VaultSnapshot.model_dump()."""
    VaultSnapshotValidator().validate(data)


def validate_settlement(data: Dict[str, Any]) -> None:
    """Валидация Deposit/Withdrawal/SwapSettlement.model_dump()."""
    SettlementValidator().validate(data)
