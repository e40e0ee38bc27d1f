"""
Data Validation Module

Post-load quality checks over the inventory fact table.

Each rule is a Polars expression that flags violating rows; a rule fails
when it flags at least one row. ERROR rules fail the suite, WARNING rules
only downgrade it to partial.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"
    WARNING = "warning"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Outcome of one rule"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Outcome of a full suite run"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


@dataclass
class _Rule:
    name: str
    column: str
    severity: ValidationSeverity
    # Builds the violation mask; called only when the column exists
    violations: Callable[[], pl.Expr]
    describe: str
    details: Dict[str, Any] = field(default_factory=dict)

    def run(self, df: pl.DataFrame) -> ValidationCheck:
        if self.column not in df.columns:
            return ValidationCheck(
                name=self.name,
                passed=False,
                severity=self.severity,
                message=f"Column '{self.column}' not found",
            )

        flagged = df.filter(self.violations().fill_null(False)).height
        passed = flagged == 0
        return ValidationCheck(
            name=self.name,
            passed=passed,
            severity=self.severity,
            message=f"{self.column}: {flagged} rows {self.describe}" if not passed else f"{self.column}: ok",
            details={**self.details, "violations": flagged},
            failed_rows=flagged,
            total_rows=len(df),
        )


class DataValidator:
    """
    Chainable rule set for a fact frame.

    Example:
        validator = (
            DataValidator()
            .add_not_null_check("store_id")
            .add_range_check("discount", min_value=0, max_value=100)
        )
        result = validator.validate(df)
    """

    def __init__(self):
        self._rules: List[_Rule] = []

    def _add(self, rule: _Rule) -> "DataValidator":
        self._rules.append(rule)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        return self._add(_Rule(
            name=f"not_null_{column}",
            column=column,
            severity=severity,
            violations=lambda: pl.col(column).is_null(),
            describe="are null",
        ))

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Inclusive bounds; either side may be open"""
        def violations() -> pl.Expr:
            mask = pl.lit(False)
            if min_value is not None:
                mask = mask | (pl.col(column) < min_value)
            if max_value is not None:
                mask = mask | (pl.col(column) > max_value)
            return mask

        return self._add(_Rule(
            name=f"range_{column}",
            column=column,
            severity=severity,
            violations=violations,
            describe=f"outside [{min_value}, {max_value}]",
            details={"min": min_value, "max": max_value},
        ))

    def add_non_negative_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        return self.add_range_check(column, min_value=0, severity=severity)

    def add_finite_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Flag NaN and infinite floats"""
        return self._add(_Rule(
            name=f"finite_{column}",
            column=column,
            severity=severity,
            violations=lambda: ~pl.col(column).is_finite(),
            describe="are not finite",
        ))

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Every non-null value must exist in the reference column"""
        return self._add(_Rule(
            name=f"ref_integrity_{column}",
            column=column,
            severity=severity,
            violations=lambda: ~pl.col(column).is_in(reference_df[reference_column].unique()),
            describe=f"missing from {reference_column}",
        ))

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """Run every rule against df"""
        started_at = datetime.now(timezone.utc)
        logger.info(f"Running {len(self._rules)} validation checks on {len(df)} rows")

        checks = [rule.run(df) for rule in self._rules]
        for check in checks:
            if not check.passed:
                logger.warning(
                    f"Validation failed: {check.name}",
                    message=check.message,
                    severity=check.severity.value,
                )

        passed = sum(1 for c in checks if c.passed)
        errors = sum(1 for c in checks if not c.passed and c.severity == ValidationSeverity.ERROR)
        warnings = len(checks) - passed - errors

        if errors:
            status = ValidationStatus.FAILED
        elif warnings:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.info(f"Validation complete: {status.value}", passed=passed, failed=errors, warnings=warnings)

        return ValidationResult(
            status=status,
            total_checks=len(checks),
            passed_checks=passed,
            failed_checks=errors,
            warning_count=warnings,
            checks=checks,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )


def create_inventory_validator(
    stores: pl.DataFrame,
    products: pl.DataFrame,
) -> DataValidator:
    """Post-load suite for the inventory fact table"""
    validator = (
        DataValidator()
        .add_not_null_check("transaction_date")
        .add_not_null_check("store_id")
        .add_not_null_check("product_id")
        .add_referential_integrity_check("store_id", stores, "store_id")
        .add_referential_integrity_check("product_id", products, "product_id")
    )
    for column in ("inventory_level", "units_sold", "units_ordered", "demand_forecast"):
        validator.add_non_negative_check(column)
    for column in ("demand_forecast", "price"):
        validator.add_finite_check(column)
    return (
        validator
        .add_range_check("discount", min_value=0, max_value=100, severity=ValidationSeverity.WARNING)
        .add_non_negative_check("price", severity=ValidationSeverity.WARNING)
    )
