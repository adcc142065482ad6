"""
Coverage resolution.

Computes the required headcount per (date, shift code, station) from weekday
rules and date overrides, and compares it with what the month actually has.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from utils import sunday_weekday

from .types import (
    CoverageDateOverride,
    CoverageDayRule,
    MonthSchedule,
    RuleId,
    Severity,
    ValidationFinding,
    normalize_station,
)


def _group_by_key(items) -> dict[tuple, list]:
    grouped = defaultdict(list)
    for item in items:
        grouped[item.key].append(item)
    return dict(grouped)


class CoverageResolver:
    """
    Required staffing lookup.

    An override for the exact (date, shift code, station) wins over any weekday
    rule, including an override of 0. Otherwise the active weekday rule for
    the date's weekday applies. With neither, nothing is required. When two
    entries share a key the larger requirement is used.
    """

    def __init__(
        self,
        day_rules: Iterable[CoverageDayRule] = (),
        overrides: Iterable[CoverageDateOverride] = (),
    ):
        grouped_rules = _group_by_key(rule for rule in day_rules if rule.active)
        grouped_overrides = _group_by_key(overrides)

        self._day_rules = {
            key: max(rules, key=lambda r: r.required_staff) for key, rules in grouped_rules.items()
        }
        self._overrides = {
            key: max(items, key=lambda o: o.required_staff) for key, items in grouped_overrides.items()
        }
        self._duplicate_rules = {key: rules for key, rules in grouped_rules.items() if len(rules) > 1}
        self._duplicate_overrides = {key: items for key, items in grouped_overrides.items() if len(items) > 1}

    def required_staffing(self, day: date, shift_code: str, station: Optional[str] = None) -> int:
        station = normalize_station(station)
        override = self._overrides.get((day, shift_code, station))
        if override is not None:
            return override.required_staff
        rule = self._day_rules.get((sunday_weekday(day), shift_code, station))
        return rule.required_staff if rule else 0

    def requirements_for_month(self, schedule: MonthSchedule) -> dict[tuple, int]:
        """Required staffing for every (date, shift code, station) with a rule or override in the month."""
        keys = set()
        for day in schedule.dates():
            weekday = sunday_weekday(day)
            for rule_weekday, shift_code, station in self._day_rules:
                if rule_weekday == weekday:
                    keys.add((day, shift_code, station))
        for day, shift_code, station in self._overrides:
            if schedule.month <= day <= schedule.month_end:
                keys.add((day, shift_code, station))

        ordered = sorted(keys, key=lambda k: (k[0], k[1], k[2] or ""))
        return {key: self.required_staffing(*key) for key in ordered}

    def coverage_gaps(self, schedule: MonthSchedule) -> list[ValidationFinding]:
        """One warning per (date, shift code, station) staffed below its requirement."""
        assigned = schedule.assigned_count()
        findings = []
        for (day, shift_code, station), required in self.requirements_for_month(schedule).items():
            actual = assigned.get((day, shift_code, station), 0)
            if actual >= required:
                continue
            where = f"{shift_code} at {station}" if station else shift_code
            findings.append(ValidationFinding(
                severity=Severity.WARNING,
                rule_id=RuleId.COVERAGE_GAP,
                date=day,
                message=f"{where} on {day.isoformat()} has {actual} of {required} required staff",
                context={
                    "shift_code": shift_code,
                    "station": station,
                    "required": required,
                    "actual": actual,
                    "shortfall": required - actual,
                },
            ))
        return findings

    def configuration_findings(self, schedule: MonthSchedule) -> list[ValidationFinding]:
        """Warnings for duplicate weekday rules and duplicate overrides touching the month."""
        findings = []
        dates = schedule.dates()

        for (weekday, shift_code, station), rules in sorted(
            self._duplicate_rules.items(), key=lambda item: (item[0][0], item[0][1], item[0][2] or "")
        ):
            day = next(d for d in dates if sunday_weekday(d) == weekday)
            counts = sorted(r.required_staff for r in rules)
            logging.warning(
                f"Duplicate coverage rules for weekday {weekday} {shift_code} "
                f"station={station}: {counts}, using {counts[-1]}"
            )
            findings.append(ValidationFinding(
                severity=Severity.WARNING,
                rule_id=RuleId.DUPLICATE_COVERAGE_RULE,
                date=day,
                message=f"{len(rules)} active coverage rules for {shift_code} on weekday {weekday}; using {counts[-1]}",
                context={
                    "weekday": weekday,
                    "shift_code": shift_code,
                    "station": station,
                    "candidates": counts,
                    "applied": counts[-1],
                },
            ))

        for (day, shift_code, station), items in sorted(
            self._duplicate_overrides.items(), key=lambda item: (item[0][0], item[0][1], item[0][2] or "")
        ):
            if not schedule.month <= day <= schedule.month_end:
                continue
            counts = sorted(o.required_staff for o in items)
            logging.warning(
                f"Duplicate coverage overrides for {day.isoformat()} {shift_code} "
                f"station={station}: {counts}, using {counts[-1]}"
            )
            findings.append(ValidationFinding(
                severity=Severity.WARNING,
                rule_id=RuleId.DUPLICATE_COVERAGE_RULE,
                date=day,
                message=f"{len(items)} coverage overrides for {shift_code} on {day.isoformat()}; using {counts[-1]}",
                context={
                    "shift_code": shift_code,
                    "station": station,
                    "candidates": counts,
                    "applied": counts[-1],
                },
            ))

        return findings
