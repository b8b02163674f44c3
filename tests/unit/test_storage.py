"""Tests for payout proof object paths."""

import re

from app.core.storage import StorageClient


class TestProofPaths:

    def test_proof_path_keeps_extension_only(self):
        path = StorageClient.generate_unique_filename("GTB Receipt 14-03.PDF", "payout-proofs")

        assert re.fullmatch(r"payout-proofs/[0-9a-f]{12}\.pdf", path)
        assert "Receipt" not in path

    def test_paths_never_repeat(self):
        paths = {StorageClient.generate_unique_filename("receipt.png", "payout-proofs") for _ in range(50)}
        assert len(paths) == 50

    def test_without_extension_or_prefix(self):
        assert re.fullmatch(r"[0-9a-f]{12}", StorageClient.generate_unique_filename("proof"))
