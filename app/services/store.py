"""
In-memory entity store for the collections dashboard.

Holds the four entity tables (tenants, conversations, payment plans and
escalations) keyed by server-assigned identifiers. Records are immutable
pydantic models; every write swaps in a new record while holding the
table lock, so readers always see a complete record and concurrent
read-modify-write cycles on the same record cannot lose updates.
"""
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from app.core.exceptions import NotFoundError, ValidationException, format_validation_errors
from app.core.logging import get_logger
from app.models.schemas import (
    Conversation,
    ConversationCreate,
    CreateModel,
    EntityModel,
    Escalation,
    EscalationCreate,
    Message,
    PaymentPlan,
    PaymentPlanCreate,
    Tenant,
    TenantCreate,
    new_id,
    utcnow,
)

logger = get_logger(__name__)


class EntityKind(str, Enum):
    """Entity tables held by the store."""
    TENANT = "tenant"
    CONVERSATION = "conversation"
    PAYMENT_PLAN = "payment_plan"
    ESCALATION = "escalation"


@dataclass(frozen=True)
class KindSpec:
    """How records of one kind are validated and stamped."""
    model: Type[EntityModel]
    create_model: Type[CreateModel]
    created_field: str


KIND_SPECS: Dict[EntityKind, KindSpec] = {
    EntityKind.TENANT: KindSpec(Tenant, TenantCreate, "created_at"),
    EntityKind.CONVERSATION: KindSpec(Conversation, ConversationCreate, "started_at"),
    EntityKind.PAYMENT_PLAN: KindSpec(PaymentPlan, PaymentPlanCreate, "created_at"),
    EntityKind.ESCALATION: KindSpec(Escalation, EscalationCreate, "created_at"),
}

IMMUTABLE_FIELDS = {"id"}


class _Table:
    def __init__(self):
        self.records: Dict[str, EntityModel] = {}
        self.lock = threading.RLock()


class EntityStore:
    """Thread-safe in-memory store for the collections entities."""

    def __init__(self):
        self._tables: Dict[EntityKind, _Table] = {kind: _Table() for kind in EntityKind}
        logger.info("Entity store initialized", kinds=[kind.value for kind in EntityKind])

    def _table(self, kind: EntityKind) -> _Table:
        return self._tables[EntityKind(kind)]

    # Reads
    def get(self, kind: EntityKind, entity_id: str) -> Optional[EntityModel]:
        """Return the record with ``entity_id`` or None if it does not exist."""
        table = self._table(kind)
        with table.lock:
            return table.records.get(entity_id)

    def list(self, kind: EntityKind) -> List[EntityModel]:
        """Return all records of ``kind`` in insertion order."""
        table = self._table(kind)
        with table.lock:
            return list(table.records.values())

    def list_by_tenant(self, kind: EntityKind, tenant_id: str) -> List[EntityModel]:
        """Return the records of ``kind`` owned by ``tenant_id``."""
        if EntityKind(kind) is EntityKind.TENANT:
            raise ValueError("Tenants are not owned by a tenant")
        return [record for record in self.list(kind) if record.tenant_id == tenant_id]

    def count(self, kind: EntityKind) -> int:
        table = self._table(kind)
        with table.lock:
            return len(table.records)

    # Writes
    def create(self, kind: EntityKind, fields: Union[Dict[str, Any], CreateModel]) -> EntityModel:
        """
        Validate intake fields and store a new record.

        The store assigns the identifier and creation timestamp; callers
        never supply either.

        Args:
            kind: Entity table to insert into
            fields: Creation payload, as a dict or the kind's create model

        Returns:
            The stored record

        Raises:
            ValidationException: If the payload is malformed
            NotFoundError: If a referenced tenant or conversation is missing
        """
        kind = EntityKind(kind)
        spec = KIND_SPECS[kind]

        if isinstance(fields, spec.create_model):
            payload = fields
        else:
            try:
                payload = spec.create_model.model_validate(fields)
            except PydanticValidationError as e:
                raise ValidationException(format_validation_errors(e.errors()))

        self._check_references(kind, payload)

        data = payload.model_dump()
        data["id"] = new_id()
        data[spec.created_field] = utcnow()
        record = spec.model.model_validate(data)

        table = self._table(kind)
        with table.lock:
            table.records[record.id] = record

        logger.info("Entity created", kind=kind.value, entity_id=record.id)
        return record

    def mutate(
        self,
        kind: EntityKind,
        entity_id: str,
        fn: Callable[[EntityModel], EntityModel],
    ) -> Optional[EntityModel]:
        """
        Atomically replace a record with ``fn(current)``.

        ``fn`` runs while the table lock is held, so any precondition it
        checks still holds when its result is written. If ``fn`` raises,
        nothing is written.

        Returns:
            The new record, or None if ``entity_id`` does not exist
        """
        table = self._table(kind)
        with table.lock:
            current = table.records.get(entity_id)
            if current is None:
                return None
            updated = fn(current)
            if updated.id != entity_id:
                raise ValidationException("identifier is immutable", field="id")
            table.records[entity_id] = updated
            return updated

    def update(self, kind: EntityKind, entity_id: str, changes: Dict[str, Any]) -> Optional[EntityModel]:
        """
        Shallow-merge ``changes`` into an existing record.

        Fields can only be overwritten, never removed. Keys may be given as
        attribute names or their camelCase aliases.

        Returns:
            The merged record, or None if ``entity_id`` does not exist

        Raises:
            ValidationException: On unknown or immutable keys, or if the merged
                record fails validation
        """
        kind = EntityKind(kind)
        spec = KIND_SPECS[kind]
        fields = self._normalize_changes(spec, changes)

        updated = self.mutate(kind, entity_id, lambda current: merge_fields(current, fields))
        if updated is None:
            logger.warning("Update target not found", kind=kind.value, entity_id=entity_id)
        else:
            logger.info("Entity updated", kind=kind.value, entity_id=entity_id, fields=sorted(fields))
        return updated

    def set_message_approval(
        self, conversation_id: str, message_id: str, value: bool
    ) -> Optional[Conversation]:
        """
        Set ``needs_approval`` on one message, addressed by id.

        Returns:
            The updated conversation, or None if the conversation does not exist

        Raises:
            NotFoundError: If the conversation has no message ``message_id``
        """

        return self.mutate(
            EntityKind.CONVERSATION,
            conversation_id,
            lambda conversation: with_message_approval(conversation, message_id, value),
        )

    def append_message(
        self, conversation_id: str, message: Union[Message, Dict[str, Any]]
    ) -> Optional[Conversation]:
        """Append a message to a conversation and bump ``last_message_at``."""
        if not isinstance(message, Message):
            try:
                message = Message.model_validate(message)
            except PydanticValidationError as e:
                raise ValidationException(format_validation_errors(e.errors()))

        def apply(conversation: Conversation) -> Conversation:
            if any(existing.id == message.id for existing in conversation.messages):
                raise ValidationException("duplicate message id", field="messages", value=message.id)
            return conversation.model_copy(update={
                "messages": [*conversation.messages, message],
                "last_message_at": message.timestamp,
            })

        return self.mutate(EntityKind.CONVERSATION, conversation_id, apply)

    # Helpers
    def _check_references(self, kind: EntityKind, payload: CreateModel) -> None:
        if kind is EntityKind.TENANT:
            return
        if self.get(EntityKind.TENANT, payload.tenant_id) is None:
            raise NotFoundError(EntityKind.TENANT.value, payload.tenant_id)
        conversation_id = getattr(payload, "conversation_id", None)
        if conversation_id and self.get(EntityKind.CONVERSATION, conversation_id) is None:
            raise NotFoundError(EntityKind.CONVERSATION.value, conversation_id)

    @staticmethod
    def _normalize_changes(spec: KindSpec, changes: Dict[str, Any]) -> Dict[str, Any]:
        model_fields = spec.model.model_fields
        aliases = {to_camel(name): name for name in model_fields}
        frozen = IMMUTABLE_FIELDS | {spec.created_field}

        fields = {}
        for key, value in changes.items():
            name = aliases.get(key, key)
            if name not in model_fields:
                raise ValidationException("unknown field", field=key)
            if name in frozen:
                raise ValidationException("field cannot be changed", field=key)
            fields[name] = value
        return fields


def merge_fields(record: EntityModel, fields: Dict[str, Any]) -> EntityModel:
    """Return a re-validated copy of ``record`` with ``fields`` overwritten."""
    if not fields:
        return record
    data = record.model_dump()
    data.update(fields)
    try:
        return type(record).model_validate(data)
    except PydanticValidationError as e:
        raise ValidationException(format_validation_errors(e.errors()))


def with_message_approval(conversation: Conversation, message_id: str, value: bool) -> Conversation:
    """
    Return ``conversation`` with one message's ``needs_approval`` set.

    Raises:
        NotFoundError: If the conversation has no message ``message_id``
    """
    index = _message_index(conversation, message_id)
    message = conversation.messages[index]
    if message.needs_approval == value:
        return conversation
    messages = list(conversation.messages)
    messages[index] = message.model_copy(update={"needs_approval": value})
    return conversation.model_copy(update={"messages": messages})


def _message_index(conversation: Conversation, message_id: str) -> int:
    for index, message in enumerate(conversation.messages):
        if message.id == message_id:
            return index
    raise NotFoundError("message", message_id, conversation_id=conversation.id)
