"""
SQL Converter.

This module converts the rows of a relational database into items, driven
only by a metadata model.

Conversion process (per job):
1. Enumerate: validate the model and walk its entity types in model order
2. Fetch: run each type's attribute query (``SELECT * FROM <Type>``)
3. Convert: for each row, run its relationship queries, map the row to an
   item and emit the item to the sink straight away

Failures are isolated as narrowly as possible:
- metadata or attribute-query failure: the entity type is skipped
- relationship-query, shape or ambiguity failure: one field is omitted
- a row without a primary key: the row is skipped

Usage:
    from formats.sql import SQLToItemConverter, CollectingSink

    converter = SQLToItemConverter(model, executor, max_workers=4)
    sink = CollectingSink()
    result = converter.convert(sink)
    print(result.get_summary())
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from constants import LogEvents, ProcessingLimits
from core.cancellation import CancellationToken, NeverCancelledToken, OperationCancelledException
from core.config import ConversionConfig
from core.database import QueryExecutor, QueryResult
from core.errors import ConnectivityError, ConversionError, MetadataError, ShapeError
from shared.models.conversion import ConversionResult, SkippedItem
from shared.models.items import Item
from shared.models.metadata import EntityTypeDescriptor, FieldKind, MetadataModel

from .sinks import CollectingSink, ItemSink
from .sql_item_mapper import RowToItemMapper, RowView
from .sql_naming import IndirectionTableResolver
from .sql_query_builder import RelationshipQuery, RelationshipQueryBuilder, build_attribute_query
from .sql_type_mapper import SQLTypeMapper
from .sql_validator import SQLMetadataValidator

logger = logging.getLogger(__name__)


@dataclass
class ConversionContext:
    """
    Mutable state of one conversion job, shared by its workers.

    Attributes:
        executor: Source database access.
        sink: Receives items as they are built.
        cancellation_token: Checked before every query.
        result: Ledger updated as the job runs.
        lock: Serializes sink emission and ledger updates.
    """
    executor: QueryExecutor
    sink: ItemSink
    cancellation_token: CancellationToken
    result: ConversionResult = field(default_factory=ConversionResult)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def skip(self, item_type: str, name: str, reason: str, location: str) -> None:
        with self.lock:
            self.result.skipped_items.append(SkippedItem(
                item_type=item_type, name=name, reason=reason, location=location
            ))

    def warn(self, message: str) -> None:
        with self.lock:
            self.result.warnings.append(message)
        logger.warning(message)

    def emit(self, item: Item, entity_type: str) -> None:
        with self.lock:
            self.sink.emit(item)
            self.result.record_item(entity_type)


class SQLToItemConverter:
    """
    Convert a relational database to items using a metadata model.

    Handles:
    - Attribute, reference and collection discovery from metadata
    - One-to-many collections over reverse foreign keys
    - Many-to-many collections over indirection tables
    - Per-type concurrency with per-type row order preserved
    - Cooperative cancellation

    Example:
        >>> converter = SQLToItemConverter(model, executor)
        >>> items = converter.process()
        >>> print(f"Converted {len(items)} rows")
    """

    def __init__(
        self,
        model: MetadataModel,
        executor: QueryExecutor,
        resolver: Optional[IndirectionTableResolver] = None,
        type_mapper: Optional[SQLTypeMapper] = None,
        max_workers: int = ProcessingLimits.DEFAULT_MAX_WORKERS,
        show_progress: bool = False,
    ):
        """
        Initialize the converter.

        Args:
            model: Metadata describing the source schema.
            executor: Runs queries against the source database.
            resolver: Names many-to-many indirection tables.
            type_mapper: Renders column values as item strings.
            max_workers: Entity types converted concurrently.
            show_progress: Show a progress bar over entity types.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be positive")

        self.model = model
        self.executor = executor
        self.resolver = resolver or IndirectionTableResolver()
        self.max_workers = max_workers
        self.show_progress = show_progress

        type_mapper = type_mapper or SQLTypeMapper()
        self._validator = SQLMetadataValidator(type_mapper)
        self._query_builder = RelationshipQueryBuilder(model, self.resolver)
        self._mapper = RowToItemMapper(model, type_mapper)

    @classmethod
    def from_config(
        cls,
        model: MetadataModel,
        executor: QueryExecutor,
        config: ConversionConfig,
    ) -> "SQLToItemConverter":
        """Build a converter from a ``ConversionConfig``."""
        if config.namespace and config.namespace != model.namespace:
            model = MetadataModel(model.name, model.descriptors_by_name(), namespace=config.namespace)
        return cls(
            model,
            executor,
            resolver=IndirectionTableResolver(config.indirection_overrides),
            max_workers=config.max_workers,
            show_progress=config.show_progress,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(
        self,
        sink: ItemSink,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ConversionResult:
        """
        Convert every entity type of the model, streaming items to ``sink``.

        Args:
            sink: Receives each item as soon as it is built.
            cancellation_token: Stops the job before the next query once cancelled.

        Returns:
            ConversionResult describing what was emitted and skipped.

        Raises:
            ConfigurationError: If the model defines no entity types.
        """
        self._validator.validate_model(self.model)
        context = ConversionContext(
            executor=self.executor,
            sink=sink,
            cancellation_token=cancellation_token or NeverCancelledToken(),
        )
        descriptors = self.model.descriptors_by_name()
        start = time.monotonic()
        logger.info(f"Converting {len(descriptors)} entity types of model '{self.model.name}'")

        with tqdm(
            total=len(descriptors),
            desc="Converting entity types",
            unit="type",
            disable=not self.show_progress or len(descriptors) < ProcessingLimits.PROGRESS_MIN_ENTITY_TYPES,
        ) as progress:
            if self.max_workers == 1:
                for descriptor in descriptors:
                    if context.cancellation_token.is_cancelled():
                        context.result.cancelled = True
                        break
                    self._run_entity_type(descriptor, context)
                    progress.update(1)
            else:
                with ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="convert"
                ) as pool:
                    futures = [
                        pool.submit(self._run_entity_type, descriptor, context)
                        for descriptor in descriptors
                    ]
                    for future in as_completed(futures):
                        future.result()
                        progress.update(1)

        result = context.result
        result.duration_seconds = time.monotonic() - start
        logger.info(
            f"Conversion complete: {result.items_emitted} items from "
            f"{result.entity_types_processed} entity types, {len(result.skipped_items)} skipped",
            extra={"event": LogEvents.CONVERSION_COMPLETE, "cancelled": result.cancelled},
        )
        return result

    def process(self, cancellation_token: Optional[CancellationToken] = None) -> List[Item]:
        """Convert the whole model and return the items in emission order."""
        sink = CollectingSink()
        self.convert(sink, cancellation_token)
        return sink.items

    def process_entity_type(self, descriptor: EntityTypeDescriptor) -> List[Item]:
        """Convert the rows of one entity type and return its items in row order."""
        sink = CollectingSink()
        context = ConversionContext(
            executor=self.executor, sink=sink, cancellation_token=NeverCancelledToken()
        )
        self._run_entity_type(descriptor, context)
        return sink.items

    # ------------------------------------------------------------------
    # Entity types
    # ------------------------------------------------------------------

    def _run_entity_type(self, descriptor: EntityTypeDescriptor, context: ConversionContext) -> None:
        """Convert one entity type, isolating its failures from other types."""
        if context.cancellation_token.is_cancelled():
            with context.lock:
                context.result.cancelled = True
            return
        try:
            self._convert_entity_type(descriptor, context)
        except OperationCancelledException:
            logger.info(f"Conversion of {descriptor.name} cancelled")
            with context.lock:
                context.result.cancelled = True
            return
        except (MetadataError, ConnectivityError) as e:
            self._skip_entity_type(descriptor, str(e), context)
            return

        with context.lock:
            context.result.entity_types_processed += 1

    def _convert_entity_type(self, descriptor: EntityTypeDescriptor, context: ConversionContext) -> None:
        errors, warnings = self._validator.validate_descriptor(self.model, descriptor)
        for warning in warnings:
            context.warn(warning)
        if errors:
            raise MetadataError(
                "; ".join(e.message for e in errors), entity_type=descriptor.name
            )

        attribute_result = self._run_query(
            context, build_attribute_query(descriptor), descriptor.name, stream=True
        )
        row_count = 0
        for values in attribute_result.rows:
            row_count += 1
            item = self._convert_row(descriptor, attribute_result.columns, values, context)
            if item is not None:
                context.emit(item, descriptor.name)

        logger.debug(f"{descriptor.name}: {row_count} rows read")

    def _skip_entity_type(self, descriptor: EntityTypeDescriptor, reason: str, context: ConversionContext) -> None:
        logger.warning(
            f"Skipping entity type {descriptor.name}: {reason}",
            extra={"event": LogEvents.ENTITY_TYPE_SKIPPED, "entity_type": descriptor.name},
        )
        context.skip("entity_type", descriptor.name, reason, descriptor.name)

    # ------------------------------------------------------------------
    # Rows and fields
    # ------------------------------------------------------------------

    def _convert_row(
        self,
        descriptor: EntityTypeDescriptor,
        columns: Sequence[str],
        values: Sequence[object],
        context: ConversionContext,
    ) -> Optional[Item]:
        """Run a row's relationship queries and map it; None if the row is unusable."""
        try:
            row = RowView(columns, values)
            identifier = self._mapper.identifier_of(descriptor, row)
        except ShapeError as e:
            logger.warning(
                f"Skipping row of {descriptor.name}: {e}",
                extra={"event": LogEvents.ROW_SKIPPED, "entity_type": descriptor.name},
            )
            context.skip("row", descriptor.name, str(e), descriptor.name)
            return None

        plan = self._query_builder.build(descriptor, identifier, columns)
        for error in plan.errors:
            self._skip_field(descriptor, error.field_name or "", str(identifier), error, context)

        relationship_results: Dict[str, List[str]] = {}
        for query in plan.queries:
            try:
                result = self._run_query(context, query.sql, descriptor.name, query.field_name)
                relationship_results[query.field_name] = self._identifiers(descriptor, query, result)
            except (ConnectivityError, ShapeError) as e:
                self._skip_field(descriptor, query.field_name, str(identifier), e, context)

        return self._mapper.map(descriptor, row, relationship_results)

    def _identifiers(
        self,
        descriptor: EntityTypeDescriptor,
        query: RelationshipQuery,
        result: QueryResult,
    ) -> List[str]:
        """
        Extract identifiers from a relationship result.

        Raises:
            ShapeError: If the result does not have exactly one column, or a
                single reference matched more than one row.
        """
        if result.column_count != 1:
            raise ShapeError(
                f"Expected 1 column from relationship query, got {result.column_count}",
                entity_type=descriptor.name,
                field_name=query.field_name,
            )
        identifiers = [str(row[0]) for row in result.rows if row[0] is not None]
        if query.kind is FieldKind.REFERENCE and len(identifiers) > 1:
            raise ShapeError(
                f"Single reference matched {len(identifiers)} rows",
                entity_type=descriptor.name,
                field_name=query.field_name,
            )
        return identifiers

    def _skip_field(
        self,
        descriptor: EntityTypeDescriptor,
        field_name: str,
        identifier: str,
        error: ConversionError,
        context: ConversionContext,
    ) -> None:
        location = f"{descriptor.name}.{field_name}"
        logger.warning(
            f"Omitting {location} from {descriptor.name}:{identifier}: {error}",
            extra={
                "event": LogEvents.FIELD_SKIPPED,
                "entity_type": descriptor.name,
                "field": field_name,
                "error_kind": type(error).__name__,
            },
        )
        context.skip("field", field_name, f"{type(error).__name__}: {error}", location)

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    def _run_query(
        self,
        context: ConversionContext,
        sql: str,
        entity_type: str,
        field_name: Optional[str] = None,
        stream: bool = False,
    ) -> QueryResult:
        """Issue one query, unless the job has been cancelled."""
        context.cancellation_token.throw_if_cancelled()
        logger.debug(
            sql,
            extra={
                "event": LogEvents.QUERY_ISSUED,
                "sql": sql,
                "entity_type": entity_type,
                "field": field_name,
            },
        )
        if stream:
            return context.executor.stream(sql)
        return context.executor.execute(sql)
