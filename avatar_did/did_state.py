from typing import Optional, Tuple
import json
import logging

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import InvalidInput, StateConflict, StateCorrupt, StateNotFound
from .models import (
    DidOperation,
    DidStateModel,
    Operation,
    OperationType,
    PublicKeyModel,
    Recovery,
    ServiceEndpointModel,
)
from .storage import StateStorage, state_key


logger = logging.getLogger(__name__)


class DidState(BaseModel):
    """Immutable snapshot of a DID document.

    Only ``DidStateStore.write`` builds these; every state change produces a
    new snapshot. ``operation`` and ``recovery`` are cleared on deactivation
    while ``public_keys`` and ``service`` keep their last values.
    """

    model_config = ConfigDict(frozen=True)

    did: str
    public_keys: Tuple[PublicKeyModel, ...] = ()
    operation: Optional[Operation] = None
    recovery: Optional[Recovery] = None
    service: Optional[Tuple[ServiceEndpointModel, ...]] = None
    last_transaction: Optional[int] = None

    @property
    def deactivated(self) -> bool:
        return (
            self.last_transaction is not None
            and self.operation is None
            and self.recovery is None
        )

    def to_model(self) -> DidStateModel:
        return DidStateModel(
            did=self.did,
            public_keys=list(self.public_keys),
            operation=self.operation,
            recovery=self.recovery,
            service=None if self.service is None else list(self.service),
            last_transaction=self.last_transaction,
        )

    def to_document(self) -> dict:
        return self.to_model().model_dump(mode="json", by_alias=True, exclude_none=True)


def check_cursor(previous: Optional[int], new: Optional[int], did: str) -> None:
    if previous is None:
        return
    if new is None or new < previous:
        raise StateConflict(
            f"Transaction {new} for {did} is older than the last anchored "
            f"transaction {previous}"
        )


class DidStateStore:
    def __init__(self, storage: StateStorage) -> None:
        self.storage = storage

    @staticmethod
    def write(model: DidStateModel) -> DidState:
        return DidState(
            did=model.did,
            public_keys=tuple(model.public_keys),
            operation=model.operation,
            recovery=model.recovery,
            service=None if model.service is None else tuple(model.service),
            last_transaction=model.last_transaction,
        )

    async def fetch(self, did: str) -> DidState:
        """Load the persisted state of ``did``."""
        state = await self._load(did)
        if state is None:
            raise StateNotFound(f"Could not read the state file {state_key(did)}")
        return state

    async def _load(self, did: str) -> Optional[DidState]:
        # None only when storage holds no document for the DID.
        key = state_key(did)
        try:
            raw = await self.storage.read(key)
        except UnicodeDecodeError as exc:
            raise StateCorrupt(f"The state file {key} is not valid UTF-8") from exc
        except (OSError, ValueError) as exc:
            raise StateNotFound(f"Could not read the state file {key}: {exc}") from exc
        if raw is None:
            return None

        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise StateCorrupt(f"The state file {key} is not valid JSON") from exc
        if not isinstance(document, dict):
            raise StateCorrupt(f"The state file {key} does not hold a JSON object")
        try:
            model = DidStateModel.model_validate(document)
        except ValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) for error in exc.errors()
            )
            raise StateCorrupt(f"The state file {key} has invalid fields: {fields}") from exc
        if model.did != did:
            raise StateCorrupt(f"The state file {key} belongs to {model.did}")
        return self.write(model)

    async def save(self, state: DidState) -> DidState:
        current = await self._load(state.did)
        if current is not None:
            check_cursor(current.last_transaction, state.last_transaction, state.did)

        document = json.dumps(state.to_document(), indent=2)
        await self.storage.write(state_key(state.did), document)
        logger.info(
            "Saved state of %s at transaction %s", state.did, state.last_transaction
        )
        return state

    def transition(self, current: DidState, operation: DidOperation) -> DidState:
        """Fold a confirmed ``operation`` into ``current`` and return the next snapshot."""
        did = current.did
        if current.deactivated:
            raise StateConflict(f"{did} is deactivated")
        check_cursor(current.last_transaction, operation.transaction, did)

        if operation.type is OperationType.CREATE:
            if current.last_transaction is not None:
                raise StateConflict(f"{did} has already been created")
            if operation.operation is None or operation.recovery is None:
                raise InvalidInput("A create operation needs an update key and a recovery key")
        elif current.last_transaction is None:
            raise StateConflict(f"{did} has not been created yet")
        if operation.type is OperationType.UPDATE and operation.operation is None:
            raise InvalidInput("An update operation needs the next update key")
        elif operation.type is OperationType.RECOVER and operation.recovery is None:
            raise InvalidInput("A recover operation needs the next recovery key")

        if operation.type is OperationType.DEACTIVATE:
            model = DidStateModel(
                did=did,
                public_keys=list(current.public_keys),
                service=None if current.service is None else list(current.service),
                last_transaction=operation.transaction,
            )
        else:
            public_keys = (
                operation.public_keys
                if operation.public_keys is not None
                else list(current.public_keys)
            )
            service = operation.service
            if service is None and current.service is not None:
                service = list(current.service)
            model = DidStateModel(
                did=did,
                public_keys=public_keys,
                operation=operation.operation or current.operation,
                recovery=operation.recovery or current.recovery,
                service=service,
                last_transaction=operation.transaction,
            )
        return self.write(model)

    async def apply(self, did: str, operation: DidOperation) -> DidState:
        current = await self._load(did)
        if current is None:
            if operation.type is not OperationType.CREATE:
                raise StateNotFound(f"Could not read the state file {state_key(did)}")
            current = self.write(DidStateModel(did=did))
        new_state = self.transition(current, operation)
        logger.info("Applied %s to %s", operation.type.value, did)
        return await self.save(new_state)
