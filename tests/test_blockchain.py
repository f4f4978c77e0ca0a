import pytest

from blockchain import GENESIS_PREVIOUS_HASH, Blockchain
from blockchain.block import Block
from blockchain.exceptions import BlockNotFoundError, MiningCancelled, ValidationError
from blockchain.hashing import digest
from blockchain.models import SinglePayload, Transaction


class TestGenesis:
    def test_new_ledger_has_only_genesis(self):
        ledger = Blockchain()
        assert len(ledger.chain) == 1
        genesis = ledger.chain[0]
        assert genesis.index == 0
        assert genesis.previous_hash == GENESIS_PREVIOUS_HASH == "0"
        assert genesis.data.to_data()["type"] == "genesis"
        assert genesis.hash == genesis.calculate_hash()
        assert ledger.is_valid()
        assert ledger.difficulty == 2
        assert ledger.pending_transactions == []

    def test_negative_difficulty_rejected(self):
        with pytest.raises(ValidationError):
            Blockchain(difficulty=-1)


class TestStaging:
    def test_stage_requires_document_and_user(self, ledger):
        with pytest.raises(ValidationError):
            ledger.stage_transaction(Transaction(document_id="d1", user_id=None))
        with pytest.raises(ValidationError):
            ledger.stage_transaction({"userId": "u1"})
        assert ledger.pending_transactions == []

    def test_unencodable_text_rejected_before_queueing(self, ledger, make_transaction):
        broken = make_transaction("d\ud800")
        with pytest.raises(ValidationError):
            ledger.stage_transaction(broken)
        with pytest.raises(ValidationError):
            ledger.stage_transaction(dict(make_transaction().to_dict(), documentName="x\udfff.pdf"))
        with pytest.raises(ValidationError):
            ledger.add_block(broken)
        assert ledger.pending_transactions == []
        assert len(ledger.chain) == 1

        ledger.stage_transaction(make_transaction("d2"))
        assert len(ledger.mine_pending_transactions()) == 1
        assert ledger.is_valid()

    def test_non_ascii_text_mines(self, ledger, make_transaction):
        block = ledger.add_block(make_transaction("contrato-ñ"))
        assert block.hash == block.calculate_hash()
        assert ledger.find_transactions_by_document_id("contrato-ñ")[0].block_index == 1
        assert ledger.is_valid()

    def test_unknown_fields_rejected(self, ledger, make_transaction):
        with pytest.raises(ValidationError):
            ledger.stage_transaction(dict(make_transaction().to_dict(), note="free text"))
        assert ledger.pending_transactions == []

    @pytest.mark.parametrize("tx_type", [None, "", 7, "genesis"])
    def test_bad_type_rejected(self, ledger, make_transaction, tx_type):
        data = dict(make_transaction().to_dict(), type=tx_type)
        with pytest.raises(ValidationError):
            ledger.stage_transaction(data)
        with pytest.raises(ValidationError):
            ledger.add_block(data)
        assert ledger.pending_transactions == []
        assert len(ledger.chain) == 1

    def test_missing_type_defaults_to_registration(self, ledger):
        ledger.stage_transaction({"documentId": "d1", "userId": "u1"})
        assert ledger.pending_transactions[0].type == "document_registration"

    def test_stage_does_not_mine(self, ledger, make_transaction):
        assert ledger.stage_transaction(make_transaction()) == 1
        assert ledger.stage_transaction(make_transaction("d2").to_dict()) == 2
        assert len(ledger.chain) == 1

    def test_mine_with_nothing_pending(self, ledger):
        before = [block.hash for block in ledger.chain]
        assert ledger.mine_pending_transactions() is None
        assert [block.hash for block in ledger.chain] == before

    def test_mine_batches_all_pending(self, ledger, make_transaction):
        ledger.stage_transaction(make_transaction("d1"))
        ledger.stage_transaction(make_transaction("d2"))

        mined = ledger.mine_pending_transactions()

        assert [tx.document_id for tx in mined] == ["d1", "d2"]
        assert ledger.pending_transactions == []
        assert len(ledger.chain) == 2
        block = ledger.latest_block
        assert isinstance(block.data.to_data(), list)
        assert block.previous_hash == ledger.chain[0].hash
        assert ledger.is_valid()

    def test_cancelled_mining_leaves_ledger_untouched(self, make_transaction):
        ledger = Blockchain(difficulty=64)
        ledger.stage_transaction(make_transaction())
        with pytest.raises(MiningCancelled):
            ledger.mine_pending_transactions(should_stop=lambda: True)
        assert len(ledger.chain) == 1
        assert len(ledger.pending_transactions) == 1


class TestAddBlock:
    def test_add_block_mines_immediately(self, ledger, make_transaction):
        block = ledger.add_block(make_transaction())
        assert block.index == 1
        assert block.hash.startswith("0")
        assert isinstance(block.data, SinglePayload)
        assert ledger.latest_block is block

    def test_add_block_validates(self, ledger):
        with pytest.raises(ValidationError):
            ledger.add_block({"documentId": "d1"})
        assert len(ledger.chain) == 1

    def test_difficulty_holds_for_every_mined_block(self, make_transaction):
        ledger = Blockchain(difficulty=2)
        for i in range(3):
            ledger.add_block(make_transaction(f"d{i}"))
        assert all(block.hash.startswith("00") for block in ledger.chain[1:])
        assert ledger.is_valid()


class TestValidation:
    @pytest.fixture
    def grown(self, ledger, make_transaction):
        ledger.add_block(make_transaction("d1"))
        ledger.stage_transaction(make_transaction("d2"))
        ledger.stage_transaction(make_transaction("d3"))
        ledger.mine_pending_transactions()
        ledger.add_block(make_transaction("d4"))
        assert ledger.is_valid()
        return ledger

    def test_tampered_data_detected(self, grown, make_transaction):
        grown.chain[1].data = SinglePayload(make_transaction("d1", content=b"forged"))
        result = grown.validate()
        assert not result.valid
        assert result.block_index == 1
        assert not grown.is_valid()

    def test_tampered_previous_hash_detected(self, grown):
        grown.chain[2].previous_hash = "f" * 64
        assert not grown.is_valid()

    def test_tampered_nonce_detected(self, grown):
        grown.chain[3].nonce += 1
        assert not grown.is_valid()

    def test_rehashed_block_breaks_link(self, make_transaction):
        ledger = Blockchain(difficulty=0)
        ledger.add_block(make_transaction("d1"))
        ledger.add_block(make_transaction("d2"))

        ledger.chain[1].data = SinglePayload(make_transaction("d1", content=b"forged"))
        ledger.chain[1].hash = ledger.chain[1].calculate_hash()

        result = ledger.validate()
        assert not result.valid
        assert result.block_index == 2
        assert "link" in result.message

    def test_missing_proof_of_work_detected(self, ledger, make_transaction):
        block = Block(1, 1700000000000, make_transaction(), ledger.latest_block.hash)
        while block.hash.startswith("0"):
            block.nonce += 1
            block.hash = block.calculate_hash()
        ledger.chain.append(block)

        result = ledger.validate()
        assert not result.valid
        assert "proof of work" in result.message

    def test_genesis_is_not_rechecked(self, ledger, make_transaction):
        ledger.add_block(make_transaction())
        ledger.chain[0].data = SinglePayload(make_transaction("genesis-forged"))
        assert ledger.is_valid()


class TestQueries:
    def test_end_to_end_lookup(self, ledger):
        content = b"quarterly report"
        ledger.stage_transaction(
            {
                "documentId": "d1",
                "userId": "u1",
                "type": "document_registration",
                "documentHash": digest(content),
            }
        )
        length = len(ledger.chain)

        ledger.mine_pending_transactions()

        assert len(ledger.chain) == length + 1
        found = ledger.find_transactions_by_document_id("d1")
        assert len(found) == 1
        assert found[0].block_index == ledger.latest_block.index
        assert found[0].document_hash == digest(content)

    def test_lookup_spans_single_and_batch_blocks(self, ledger, make_transaction):
        ledger.add_block(make_transaction("d1"))
        ledger.stage_transaction(make_transaction("d2"))
        ledger.stage_transaction(make_transaction("d1", user_id="u2"))
        ledger.mine_pending_transactions()

        found = ledger.find_transactions_by_document_id("d1")
        assert [view.block_index for view in found] == [1, 2]
        view = found[1].to_dict()
        assert view["userId"] == "u2"
        assert view["blockHash"] == ledger.chain[2].hash
        assert view["timestamp"] == ledger.chain[2].timestamp
        assert ledger.find_transactions_by_document_id("missing") == []

    def test_stats(self, ledger, make_transaction):
        ledger.add_block(make_transaction())
        ledger.stage_transaction(make_transaction("d2"))
        stats = ledger.stats()
        assert stats == {
            "totalBlocks": 2,
            "difficulty": 1,
            "pendingCount": 1,
            "isValid": True,
            "latestBlock": ledger.chain[1].to_dict(),
        }

    def test_get_block_bounds(self, ledger):
        assert ledger.get_block(0) is ledger.chain[0]
        for index in (-1, 1, "0", True):
            with pytest.raises(BlockNotFoundError):
                ledger.get_block(index)


class TestSnapshot:
    def test_snapshot_restores_valid_chain(self, ledger, make_transaction):
        ledger.add_block(make_transaction("d1"))
        ledger.stage_transaction(make_transaction("d2"))

        snapshot = ledger.to_dict()
        restored = Blockchain.from_dict(snapshot)

        assert [b.hash for b in restored.chain] == [b.hash for b in ledger.chain]
        assert restored.difficulty == 1
        assert [tx.document_id for tx in restored.pending_transactions] == ["d2"]
        assert restored.is_valid()

    def test_snapshot_tampering_detected(self, ledger, make_transaction):
        ledger.add_block(make_transaction("d1"))
        snapshot = ledger.to_dict()
        snapshot["chain"][1]["data"]["documentHash"] = digest(b"other")

        assert not Blockchain.from_dict(snapshot).is_valid()

    def test_empty_snapshot_rejected(self):
        with pytest.raises(ValidationError):
            Blockchain.from_dict({"chain": []})
