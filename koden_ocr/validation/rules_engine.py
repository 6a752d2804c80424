"""Configurable validation rules engine for extracted donation records.

Checks amounts, name lengths and record completeness, and flags outer and
enclosed amounts that disagree so an operator can review the envelope.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from koden_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of a single validation check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str
    confidence_adjustment: float = 0.0


@dataclass
class ValidationReport:
    """Aggregated validation report for one donation record."""

    all_valid: bool
    results: list[ValidationResult]
    warnings: list[str] = field(default_factory=list)
    field_confidences: dict[str, float] = field(default_factory=dict)

    def failures(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.is_valid]


def _is_empty(value: Any) -> bool:
    return value is None or not str(value).strip()


class RulesEngine:
    """Configurable validation rules engine.

    Applies field-level rules and record-level checks loaded from a YAML
    file, adjusting per-field confidence scores as it goes.

    Args:
        rules_path: Path to the validation rules YAML file.
    """

    def __init__(
        self, rules_path: Path = Path("configs/validation_rules.yaml")
    ) -> None:
        self.rules = self._load_rules(Path(rules_path))
        self._validators: dict[str, Any] = {
            "digits_only": self._validate_digits_only,
            "positive_amount": self._validate_positive_amount,
            "amount_range": self._validate_amount_range,
            "max_length": self._validate_max_length,
        }
        self._record_checks: dict[str, Any] = {
            "required_any": self._check_required_any,
            "amount_consistency": self._check_amount_consistency,
        }

    def _load_rules(self, path: Path) -> dict:
        """Load validation rules from a YAML file.

        Args:
            path: Path to the rules file.

        Returns:
            Dictionary with ``fields`` and ``record`` sections.
        """
        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
                if data:
                    logger.info("Loaded validation rules from %s", path)
                    return data
        logger.debug("Using default validation rules")
        return self._default_rules()

    def _default_rules(self) -> dict:
        """Rules used when no config file is available."""
        return {
            "fields": {
                "amount": [
                    {"type": "digits_only"},
                    {"type": "positive_amount"},
                    {"type": "amount_range", "min": 1, "max": 10_000_000},
                ],
                "enclosed_amount": [
                    {"type": "digits_only"},
                    {"type": "positive_amount"},
                ],
                "personal_name": [{"type": "max_length", "max": 30}],
                "organization_name": [{"type": "max_length", "max": 80}],
            },
            "record": [
                {
                    "type": "required_any",
                    "fields": ["personal_name", "organization_name", "amount"],
                },
                {"type": "amount_consistency"},
            ],
        }

    def validate(
        self,
        record: dict[str, Any],
        field_confidences: dict[str, float] | None = None,
    ) -> ValidationReport:
        """Validate a flattened donation record.

        Args:
            record: Field name-value pairs, as from ``ExtractionResult.to_record``.
            field_confidences: Initial confidence scores per field.

        Returns:
            Validation report with results, warnings and adjusted confidences.
        """
        results: list[ValidationResult] = []
        warnings: list[str] = []
        adjusted = dict(field_confidences or {})

        for field_name, rules in (self.rules.get("fields") or {}).items():
            value = record.get(field_name)

            for rule in rules:
                rule_type = rule.get("type")
                validator = self._validators.get(rule_type)

                if not validator:
                    warnings.append(f"Unknown rule type: {rule_type}")
                    continue

                result = validator(field_name, value, rule)
                results.append(result)

                if field_name in adjusted:
                    adjusted[field_name] += result.confidence_adjustment
                    adjusted[field_name] = max(0.0, min(1.0, adjusted[field_name]))

        for rule in self.rules.get("record") or []:
            rule_type = rule.get("type")
            check = self._record_checks.get(rule_type)
            if not check:
                warnings.append(f"Unknown rule type: {rule_type}")
                continue
            result = check(record, rule)
            results.append(result)
            if rule_type == "amount_consistency" and not result.is_valid:
                warnings.append(result.message)

        all_valid = all(r.is_valid for r in results)
        logger.info(
            "Validation: %s (%d checks)",
            "PASSED" if all_valid else "FAILED",
            len(results),
        )

        return ValidationReport(
            all_valid=all_valid,
            results=results,
            warnings=warnings,
            field_confidences=adjusted,
        )

    def _validate_digits_only(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check that an amount consists of ASCII digits only."""
        if _is_empty(value):
            return ValidationResult(
                field_name, True, "No value to validate", "digits_only"
            )
        text = str(value)
        if text.isascii() and text.isdigit():
            return ValidationResult(
                field_name, True, "Digits only", "digits_only", 0.05
            )
        return ValidationResult(
            field_name, False, f"Non-digit characters in: {text}", "digits_only", -0.3
        )

    def _validate_positive_amount(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check if a value is a positive yen amount."""
        if _is_empty(value):
            return ValidationResult(
                field_name, True, "No value to validate", "positive_amount"
            )

        try:
            amount = int(str(value))
        except ValueError:
            return ValidationResult(
                field_name,
                False,
                f"Invalid amount format: {value}",
                "positive_amount",
                -0.3,
            )
        if amount > 0:
            return ValidationResult(
                field_name,
                True,
                f"Valid positive amount: {amount}",
                "positive_amount",
                0.1,
            )
        return ValidationResult(
            field_name,
            False,
            f"Amount must be positive: {amount}",
            "positive_amount",
            -0.2,
        )

    def _validate_amount_range(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check if an amount falls within a specified range."""
        if _is_empty(value):
            return ValidationResult(
                field_name, True, "No value to validate", "amount_range"
            )

        try:
            amount = int(str(value))
            min_val = int(rule.get("min", 1))
            max_val = int(rule.get("max", 10_000_000))
        except (TypeError, ValueError):
            return ValidationResult(
                field_name, False, f"Invalid amount: {value}", "amount_range", -0.2
            )

        if min_val <= amount <= max_val:
            return ValidationResult(
                field_name, True, "Amount in valid range", "amount_range", 0.05
            )
        return ValidationResult(
            field_name,
            False,
            f"Amount {amount} outside range [{min_val}, {max_val}]",
            "amount_range",
            -0.15,
        )

    def _validate_max_length(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Reject implausibly long names, usually a sign of merged lines."""
        if _is_empty(value):
            return ValidationResult(
                field_name, True, "No value to validate", "max_length"
            )
        limit = int(rule.get("max", 50))
        length = len(str(value))
        if length <= limit:
            return ValidationResult(field_name, True, "Length ok", "max_length")
        return ValidationResult(
            field_name,
            False,
            f"{field_name} is {length} characters, limit {limit}",
            "max_length",
            -0.2,
        )

    def _check_required_any(self, record: dict[str, Any], rule: dict) -> ValidationResult:
        """At least one of the listed fields must carry a value."""
        names = rule.get("fields") or []
        if any(not _is_empty(record.get(name)) for name in names):
            return ValidationResult(
                "record", True, "Record has identifying data", "required_any"
            )
        return ValidationResult(
            "record",
            False,
            f"One of {', '.join(names)} is required",
            "required_any",
            -0.5,
        )

    def _check_amount_consistency(
        self, record: dict[str, Any], rule: dict
    ) -> ValidationResult:
        """Compare the outer amount with the amount written on the inner envelope."""
        outer = record.get("amount")
        inner = record.get("enclosed_amount")
        if _is_empty(outer) or _is_empty(inner):
            return ValidationResult(
                "amount", True, "Nothing to compare", "amount_consistency"
            )
        if str(outer) == str(inner):
            return ValidationResult(
                "amount",
                True,
                "Outer and enclosed amounts agree",
                "amount_consistency",
                0.1,
            )
        return ValidationResult(
            "amount",
            False,
            f"Outer amount {outer} differs from enclosed amount {inner}",
            "amount_consistency",
            -0.2,
        )
