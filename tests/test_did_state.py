"""
Tests for avatar_did.did_state: snapshots, persistence and transitions.
"""

import json

import pytest
from pydantic import ValidationError

from avatar_did.did_state import DidState, DidStateStore
from avatar_did.errors import InvalidInput, StateConflict, StateCorrupt, StateNotFound
from avatar_did.models import DidOperation, DidStateModel, PublicKeyPurpose
from avatar_did.storage import FileStateStorage, MemoryStateStorage, state_key

from conftest import make_key, make_recovery_key, make_service, make_update_key, run


DID = "did:tyron:zil:test:0xabc"


@pytest.fixture
def model():
    return DidStateModel(
        did=DID,
        public_keys=[make_key("key-1"), make_key("key-2", ("auth", "agreement"))],
        operation=make_update_key(),
        recovery=make_recovery_key(),
        service=[make_service()],
        last_transaction=7,
    )


@pytest.fixture
def store():
    return DidStateStore(MemoryStateStorage())


def stored(document):
    return DidStateStore(MemoryStateStorage({state_key(DID): json.dumps(document)}))


class UnreadableStorage:
    def __init__(self):
        self.written = []

    async def read(self, key):
        raise PermissionError(f"permission denied: {key}")

    async def write(self, key, document):
        self.written.append(key)


class TestWrite:

    def test_fields_match_model(self, model):
        state = DidStateStore.write(model)
        assert state.did == model.did
        assert list(state.public_keys) == model.public_keys
        assert state.operation == model.operation
        assert state.recovery == model.recovery
        assert list(state.service) == model.service
        assert state.last_transaction == model.last_transaction

    def test_snapshot_is_immutable(self, model):
        state = DidStateStore.write(model)
        with pytest.raises(ValidationError):
            state.last_transaction = 8
        with pytest.raises(AttributeError):
            state.public_keys.append(make_key("key-3"))
        with pytest.raises(ValidationError):
            state.public_keys[0].id = "other"

    def test_later_model_changes_do_not_leak(self, model):
        state = DidStateStore.write(model)
        model.public_keys.append(make_key("key-3"))
        assert len(state.public_keys) == 2

    def test_duplicate_key_ids_rejected(self):
        with pytest.raises(ValidationError):
            DidStateModel(did=DID, public_keys=[make_key("k"), make_key("k")])

    def test_purpose_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            make_key("k", ())


class TestFetch:

    def test_missing_document(self, store):
        with pytest.raises(StateNotFound, match="Could not read"):
            run(store.fetch("did:example:123"))

    def test_document_without_did(self):
        with pytest.raises(StateCorrupt, match="did"):
            run(stored({"publicKeys": []}).fetch(DID))

    def test_invalid_json(self):
        store = DidStateStore(MemoryStateStorage({state_key(DID): "{not json"}))
        with pytest.raises(StateCorrupt):
            run(store.fetch(DID))

    def test_non_object_document(self):
        with pytest.raises(StateCorrupt):
            run(stored(["did"]).fetch(DID))

    def test_bad_field_shape(self):
        with pytest.raises(StateCorrupt, match="lastTransaction"):
            run(stored({"did": DID, "lastTransaction": "soon"}).fetch(DID))

    def test_document_for_another_did(self):
        with pytest.raises(StateCorrupt):
            run(stored({"did": "did:example:other"}).fetch(DID))

    def test_legacy_field_names(self):
        document = {
            "did_tyronZIL": DID,
            "publicKey": [
                {"id": "key-1", "type": "t", "publicKeyBase58": "abc", "purpose": ["general", "auth"]}
            ],
            "lastTransaction": 3,
        }
        state = run(stored(document).fetch(DID))
        assert state.did == DID
        assert state.public_keys[0].purpose == (PublicKeyPurpose.GENERAL, PublicKeyPurpose.AUTH)
        assert state.last_transaction == 3
        assert state.operation is None
        assert state.service is None

    def test_long_purpose_names(self):
        document = {
            "did": DID,
            "publicKeys": [
                {
                    "id": "key-1", "type": "t", "publicKeyBase58": "abc",
                    "purpose": ["authentication", "keyAgreement"],
                }
            ],
        }
        state = run(stored(document).fetch(DID))
        assert state.public_keys[0].purpose == (PublicKeyPurpose.AUTH, PublicKeyPurpose.AGREEMENT)

    def test_fetch_is_idempotent(self, store, model):
        run(store.save(DidStateStore.write(model)))
        first = run(store.fetch(DID))
        second = run(store.fetch(DID))
        assert first == second
        assert first is not second


class TestSave:

    def test_save_then_fetch(self, store, model):
        state = DidStateStore.write(model)
        run(store.save(state))
        assert run(store.fetch(DID)) == state

    def test_persisted_document_shape(self, model):
        storage = MemoryStateStorage()
        run(DidStateStore(storage).save(DidStateStore.write(model)))
        document = json.loads(run(storage.read(f"{DID}-DID_STATE.json")))
        assert set(document) == {"did", "publicKeys", "operation", "recovery", "service", "lastTransaction"}
        assert document["publicKeys"][1]["purpose"] == ["auth", "agreement"]
        assert document["operation"]["publicKeyBase58"] == "update-1"

    def test_save_rejects_older_cursor(self, store, model):
        run(store.save(DidStateStore.write(model)))
        older = DidStateStore.write(model.model_copy(update={"last_transaction": 6}))
        with pytest.raises(StateConflict):
            run(store.save(older))
        assert run(store.fetch(DID)).last_transaction == 7

    def test_save_accepts_same_cursor(self, store, model):
        run(store.save(DidStateStore.write(model)))
        run(store.save(DidStateStore.write(model)))

    def test_file_storage(self, tmp_path, model):
        store = DidStateStore(FileStateStorage(str(tmp_path)))
        state = DidStateStore.write(model)
        run(store.save(state))
        assert (tmp_path / f"{DID}-DID_STATE.json").exists()
        assert run(store.fetch(DID)) == state

    def test_file_storage_missing(self, tmp_path):
        store = DidStateStore(FileStateStorage(str(tmp_path)))
        with pytest.raises(StateNotFound):
            run(store.fetch("did:example:123"))

    def test_file_storage_rejects_path_keys(self, tmp_path):
        store = DidStateStore(FileStateStorage(str(tmp_path)))
        with pytest.raises(StateNotFound):
            run(store.fetch("../escape"))

    def test_undecodable_file_is_corrupt(self, tmp_path):
        path = tmp_path / f"{DID}-DID_STATE.json"
        path.write_bytes(b'{"did": "\xff\xfe", "lastTransaction": 9}')
        store = DidStateStore(FileStateStorage(str(tmp_path)))
        with pytest.raises(StateCorrupt):
            run(store.fetch(DID))

    def test_save_does_not_overwrite_undecodable_file(self, tmp_path):
        path = tmp_path / f"{DID}-DID_STATE.json"
        original = b'{"did": "\xff\xfe", "lastTransaction": 9}'
        path.write_bytes(original)
        store = DidStateStore(FileStateStorage(str(tmp_path)))
        with pytest.raises(StateCorrupt):
            run(store.save(DidStateStore.write(DidStateModel(did=DID, last_transaction=1))))
        assert path.read_bytes() == original

    def test_save_stops_on_read_failure(self, model):
        storage = UnreadableStorage()
        with pytest.raises(StateNotFound):
            run(DidStateStore(storage).save(DidStateStore.write(model)))
        assert storage.written == []


class TestTransition:

    def blank(self):
        return DidStateStore.write(DidStateModel(did=DID))

    def created(self, store):
        return store.transition(
            self.blank(),
            DidOperation(
                type="create", transaction=1,
                public_keys=[make_key()], operation=make_update_key(),
                recovery=make_recovery_key(), service=[make_service()],
            ),
        )

    def test_create(self, store):
        state = self.created(store)
        assert state.last_transaction == 1
        assert state.operation == make_update_key()
        assert state.recovery == make_recovery_key()
        assert not state.deactivated

    def test_create_needs_keys(self, store):
        with pytest.raises(InvalidInput):
            store.transition(self.blank(), DidOperation(type="create", transaction=1))

    def test_create_twice(self, store):
        state = self.created(store)
        with pytest.raises(StateConflict):
            store.transition(
                state,
                DidOperation(
                    type="create", transaction=2,
                    operation=make_update_key(), recovery=make_recovery_key(),
                ),
            )

    @pytest.mark.parametrize(
        "operation",
        [
            DidOperation(type="update", transaction=3, operation=make_update_key("2")),
            DidOperation(type="recover", transaction=3, recovery=make_recovery_key("2")),
            DidOperation(type="deactivate", transaction=3),
        ],
    )
    def test_operations_before_create_rejected(self, store, operation):
        with pytest.raises(StateConflict, match="not been created"):
            store.transition(self.blank(), operation)

    def test_apply_rejects_deactivate_on_stored_blank_state(self, store):
        run(store.save(self.blank()))
        with pytest.raises(StateConflict):
            run(store.apply(DID, DidOperation(type="deactivate", transaction=3)))

    def test_update_replaces_given_fields(self, store):
        state = self.created(store)
        new = store.transition(
            state,
            DidOperation(
                type="update", transaction=5,
                public_keys=[make_key("key-9")], operation=make_update_key("2"),
            ),
        )
        assert [key.id for key in new.public_keys] == ["key-9"]
        assert new.operation == make_update_key("2")
        assert new.recovery == state.recovery
        assert new.service == state.service
        assert new.last_transaction == 5
        assert state.last_transaction == 1

    def test_update_needs_update_key(self, store):
        with pytest.raises(InvalidInput):
            store.transition(self.created(store), DidOperation(type="update", transaction=2))

    def test_recover_needs_recovery_key(self, store):
        state = self.created(store)
        with pytest.raises(InvalidInput):
            store.transition(state, DidOperation(type="recover", transaction=2))
        new = store.transition(
            state, DidOperation(type="recover", transaction=2, recovery=make_recovery_key("2"))
        )
        assert new.recovery == make_recovery_key("2")

    def test_lower_transaction_rejected(self, store):
        state = store.transition(
            self.created(store),
            DidOperation(type="update", transaction=10, operation=make_update_key("2")),
        )
        with pytest.raises(StateConflict):
            store.transition(
                state, DidOperation(type="update", transaction=9, operation=make_update_key("3"))
            )

    def test_equal_transaction_allowed(self, store):
        state = self.created(store)
        new = store.transition(
            state, DidOperation(type="update", transaction=1, operation=make_update_key("2"))
        )
        assert new.last_transaction == 1

    def test_deactivate_clears_capability_keys(self, store):
        state = self.created(store)
        new = store.transition(state, DidOperation(type="deactivate", transaction=4))
        assert new.operation is None
        assert new.recovery is None
        assert new.public_keys == state.public_keys
        assert new.service == state.service
        assert new.deactivated

    def test_no_operation_after_deactivation(self, store):
        state = store.transition(self.created(store), DidOperation(type="deactivate", transaction=4))
        with pytest.raises(StateConflict):
            store.transition(
                state, DidOperation(type="update", transaction=5, operation=make_update_key("2"))
            )


class TestApply:

    def test_create_then_update(self, store):
        run(store.apply(
            DID,
            DidOperation(
                type="create", transaction=1,
                operation=make_update_key(), recovery=make_recovery_key(),
            ),
        ))
        state = run(store.apply(
            DID, DidOperation(type="update", transaction=2, operation=make_update_key("2"))
        ))
        assert state.last_transaction == 2
        assert run(store.fetch(DID)) == state

    def test_update_without_state(self, store):
        with pytest.raises(StateNotFound):
            run(store.apply(
                DID, DidOperation(type="update", transaction=2, operation=make_update_key("2"))
            ))


def test_snapshot_type():
    assert isinstance(DidStateStore.write(DidStateModel(did=DID)), DidState)
