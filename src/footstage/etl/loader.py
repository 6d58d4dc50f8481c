"""
Staging loader.

Drives validator -> transformer -> store insert for a sequence of raw
records, in source order, isolating failures per record.
"""

import json
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from footstage.errors import IssueKind
from footstage.ingestion.base import FIRST_DATA_LINE, RecordTransformer, Skip, TransformError
from footstage.schemas.relations import Relation
from footstage.store.core import InsertStatus, ReferentialStore
from footstage.utils.logging import get_logger

log = get_logger(__name__)

# Unexpected parse failures inside a transformer; anything else propagates
TRANSFORM_EXCEPTIONS = (ValueError, TypeError, KeyError)


@dataclass(frozen=True)
class LoadIssue:
    """
    A recoverable problem with one source record.

    Attributes:
        kind: Issue classification.
        relation: Relation being loaded.
        line: 1-based line number in the source file.
        message: Human-readable diagnostic.
        fields: Offending field names.
        values: Raw values of the offending fields (or the whole record).
    """

    kind: IssueKind
    relation: Relation
    line: int
    message: str
    fields: tuple[str, ...] = ()
    values: Mapping[str, Any] = field(default_factory=dict)

    @property
    def severity(self) -> str:
        return self.kind.severity

    def __str__(self) -> str:
        return f"{self.relation.value} line {self.line}: [{self.kind.value}] {self.message}"


@dataclass
class LoadReport:
    """
    Outcome of loading one relation.

    Attributes:
        relation: Relation loaded.
        source: Source file, if loaded from disk.
        n_records: Records read from the source.
        inserted: Rows inserted into the store.
        skipped: Records not inserted (issues plus silent skips).
        issues: Recoverable problems, in source order.
    """

    relation: Relation
    source: Path | None = None
    n_records: int = 0
    inserted: int = 0
    skipped: int = 0
    issues: list[LoadIssue] = field(default_factory=list)

    def count(self, kind: IssueKind) -> int:
        """Number of issues of one kind."""
        return sum(1 for issue in self.issues if issue.kind is kind)

    @property
    def counts_by_kind(self) -> dict[IssueKind, int]:
        counter = Counter(issue.kind for issue in self.issues)
        return {kind: counter.get(kind, 0) for kind in IssueKind}

    @property
    def errors(self) -> list[LoadIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[LoadIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def silent_skips(self) -> int:
        return self.skipped - len(self.issues)


def _record_repr(record: Mapping[str, Any]) -> str:
    return json.dumps(dict(record), ensure_ascii=False, default=str)


class StagingLoader:
    """
    Generic loader parameterized by a relation's transformer.

    The transformer carries the relation definition and its required-field
    validator, so one loader class serves all four relations.
    """

    def __init__(self, store: ReferentialStore, transformer: RecordTransformer[Any]) -> None:
        """
        Initialize staging loader.

        Args:
            store: Store receiving the rows.
            transformer: Transformer (and validator) of the target relation.
        """
        self.store = store
        self.transformer = transformer
        self.relation = transformer.relation

    def load(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        source: Path | None = None,
        first_line: int = FIRST_DATA_LINE,
    ) -> LoadReport:
        """
        Load records in source order.

        Never retries; every failure is terminal for its record only.

        Args:
            records: Raw field mappings, in source order.
            source: Source path, for the report.
            first_line: Line number of the first record.

        Returns:
            LoadReport with inserted/skipped counts and issues.
        """
        report = LoadReport(relation=self.relation, source=source)

        for offset, record in enumerate(records):
            report.n_records += 1
            issue = self._load_record(record, first_line + offset, report)
            if issue is not None:
                report.issues.append(issue)
                self._log_issue(issue)

        self.store.commit()
        log.info(
            "Loaded relation",
            relation=self.relation.value,
            source=str(source) if source else None,
            records=report.n_records,
            inserted=report.inserted,
            skipped=report.skipped,
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return report

    def _load_record(
        self, record: Mapping[str, Any], line: int, report: LoadReport
    ) -> LoadIssue | None:
        # 1. Required fields, checked against the raw values
        missing = self.transformer.validator.missing(record)
        if missing:
            report.skipped += 1
            return LoadIssue(
                kind=IssueKind.MISSING_FIELDS,
                relation=self.relation,
                line=line,
                message=f"missing field(s) [{', '.join(missing)}] - record: {_record_repr(record)}",
                fields=tuple(missing),
                values=dict(record),
            )

        # 2. Transform
        try:
            outcome = self.transformer.transform(record, line)
        except TransformError as e:
            report.skipped += 1
            return LoadIssue(
                kind=IssueKind.INVALID_VALUE,
                relation=self.relation,
                line=line,
                message=f"transform error: {e}",
                fields=(e.field,),
                values={e.field: e.value},
            )
        except TRANSFORM_EXCEPTIONS as e:
            report.skipped += 1
            return LoadIssue(
                kind=IssueKind.INVALID_VALUE,
                relation=self.relation,
                line=line,
                message=f"transform error: {type(e).__name__}: {e} - record: {_record_repr(record)}",
                values=dict(record),
            )

        if isinstance(outcome, Skip):
            report.skipped += 1
            if outcome.silent:
                log.debug(
                    "Skipped record",
                    relation=self.relation.value,
                    line=line,
                    reason=outcome.reason,
                )
                return None
            return LoadIssue(
                kind=outcome.kind,  # type: ignore[arg-type]
                relation=self.relation,
                line=line,
                message=outcome.reason,
                fields=outcome.fields,
                values={f: record.get(f) for f in outcome.fields} or dict(record),
            )

        # 3. Insert
        result = self.store.insert(self.relation, outcome)
        if result.status is InsertStatus.INSERTED:
            report.inserted += 1
            return None

        report.skipped += 1
        if result.status is InsertStatus.DUPLICATE_KEY:
            key_fields = self.transformer.definition.primary_key or ()
            return LoadIssue(
                kind=IssueKind.DUPLICATE_RECORD,
                relation=self.relation,
                line=line,
                message=f"duplicate key {list(result.key or ())} already loaded",
                fields=tuple(key_fields),
                values=dict(zip(key_fields, result.key or ())),
            )

        fk = self.transformer.definition.foreign_key
        parent_fields = fk.fields if fk else ()
        parent = result.parent.value if result.parent else "?"
        parent_key = result.parent_key or ()
        return LoadIssue(
            kind=IssueKind.REFERENTIAL_ERROR,
            relation=self.relation,
            line=line,
            message=(
                f"no {parent} row for ({', '.join(str(v) for v in parent_key)}) - "
                f"record: {_record_repr(record)}"
            ),
            fields=tuple(parent_fields),
            values=dict(zip(parent_fields, parent_key)),
        )

    def _log_issue(self, issue: LoadIssue) -> None:
        event = {
            IssueKind.MISSING_FIELDS: "Missing required fields",
            IssueKind.INVALID_VALUE: "Invalid field value",
            IssueKind.DUPLICATE_RECORD: "Duplicate record",
            IssueKind.REFERENTIAL_ERROR: "Missing parent record",
        }[issue.kind]
        emit = log.warning if issue.severity == "warning" else log.error
        emit(
            event,
            relation=issue.relation.value,
            line=issue.line,
            fields=list(issue.fields),
            detail=issue.message,
        )
