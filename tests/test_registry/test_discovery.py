"""Tests for the discovery engine (example_factory.registry.discovery).

Covers:
- Admitting contracts with a @notice tag and a mirrored test
- Category inference from directory position
- Skipping mocks directories
- Errors for missing @notice / missing test, keeping the previous entry
- Id collisions
- Manual fields carried forward; removed ids reported
- Idempotence of the persisted output
"""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from example_factory.errors import DiscoveryError
from example_factory.registry import (
    ArtifactDescriptor,
    DerivedFields,
    ManualFields,
    Registry,
    discover,
    discover_tree,
    serialize_registry,
)
from example_factory.registry.discovery import category_from_path


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _with_manual(registry: Registry, artifact_id: str, manual: ManualFields) -> Registry:
    artifacts = dict(registry.artifacts)
    artifacts[artifact_id] = artifacts[artifact_id].model_copy(update={"manual": manual})
    return Registry(artifacts=artifacts)


# ---------------------------------------------------------------------------
# Fresh discovery
# ---------------------------------------------------------------------------


class TestDiscover:
    def test_admits_all_examples(self, source_root):
        registry, errors = discover(source_root)
        assert errors == []
        assert registry.ids() == [
            "fhe-counter",
            "encrypt-multiple-values",
            "encrypt-single-value",
        ]

    def test_derived_fields(self, source_root):
        registry, _ = discover(source_root)
        counter = registry.get("fhe-counter")
        assert counter.contract_path == "contracts/FHECounter.sol"
        assert counter.test_path == "test/FHECounter.ts"
        assert counter.description == (
            "A very basic example contract showing how to work with encrypted data using FHEVM."
        )
        assert counter.category == "Uncategorized"
        assert counter.derived.title == "FHE Counter"
        assert counter.manual == ManualFields()

    def test_nested_category_and_multiline_notice(self, source_root):
        registry, _ = discover(source_root)
        single = registry.get("encrypt-single-value")
        assert single.category == "Basic - Encryption"
        assert single.category_key == "basicencryption"
        assert single.test_path == "test/basic/encryption/EncryptSingleValue.ts"
        assert single.description == "Demonstrates encrypting a single value and storing it on chain."

    def test_mocks_directory_skipped(self, source_root):
        registry, _ = discover(source_root)
        assert "util" not in registry

    def test_missing_contracts_dir_raises(self, tmp_path):
        with pytest.raises(DiscoveryError, match="contract directory not found"):
            discover(tmp_path)

    def test_categories_ordered(self, source_root):
        registry, _ = discover(source_root)
        categories = registry.categories()
        assert list(categories) == ["basicencryption", "uncategorized"]
        assert categories["basicencryption"].ids == [
            "encrypt-multiple-values",
            "encrypt-single-value",
        ]
        assert registry.category_ids("nope") is None

    def test_custom_directories(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "Token.sol").write_text("/// @notice A token.\ncontract Token {}\n")
        (tmp_path / "specs").mkdir()
        (tmp_path / "specs" / "Token.ts").write_text("// t\n")
        registry, errors = discover(tmp_path, contracts_dir="src", tests_dir="specs")
        assert errors == []
        assert registry.get("token").test_path == "specs/Token.ts"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestDiscoveryErrors:
    def test_missing_notice_reports_error(self, source_root):
        (source_root / "contracts" / "FHECounter.sol").write_text("contract FHECounter {}\n")
        registry, errors = discover(source_root)
        assert len(errors) == 1
        assert errors[0].path == "contracts/FHECounter.sol"
        assert errors[0].reason == "missing @notice tag"
        assert "fhe-counter" not in registry

    def test_missing_notice_keeps_previous_entry(self, source_root):
        previous, _ = discover(source_root)
        previous = _with_manual(
            previous, "fhe-counter", ManualFields(npm_dependencies={"extra": "^1.0.0"})
        )
        (source_root / "contracts" / "FHECounter.sol").write_text("contract FHECounter {}\n")

        registry, errors = discover(source_root, previous)
        assert [e.reason for e in errors] == ["missing @notice tag"]
        assert registry.get("fhe-counter") == previous.get("fhe-counter")
        assert registry.ids() == previous.ids()

    def test_missing_test_file(self, source_root):
        (source_root / "test" / "basic" / "encryption" / "EncryptSingleValue.ts").unlink()
        registry, errors = discover(source_root)
        assert len(errors) == 1
        assert errors[0].reason.startswith("missing test file")
        assert "test/basic/encryption/EncryptSingleValue.ts" in errors[0].reason
        assert "encrypt-single-value" not in registry

    def test_non_utf8_contract(self, source_root):
        previous, _ = discover(source_root)
        (source_root / "contracts" / "Bad.sol").write_bytes(
            b"/// @notice caf\xe9 latin-1\ncontract Bad {}\n"
        )
        (source_root / "test" / "Bad.ts").write_text("// bad test\n")
        (source_root / "contracts" / "FHECounter.sol").write_bytes(
            b"/// @notice caf\xe9\ncontract FHECounter {}\n"
        )

        registry, errors = discover(source_root, previous)
        assert [(e.path, e.reason) for e in errors] == [
            ("contracts/Bad.sol", "not valid UTF-8"),
            ("contracts/FHECounter.sol", "not valid UTF-8"),
        ]
        assert "bad" not in registry
        assert registry.get("fhe-counter") == previous.get("fhe-counter")
        assert len(registry) == 3

    def test_id_collision_first_seen_wins(self, source_root):
        other = source_root / "contracts" / "zz" / "FHECounter.sol"
        other.parent.mkdir()
        other.write_text("/// @notice Duplicate.\ncontract FHECounter {}\n")
        registry, errors = discover(source_root)
        assert len(errors) == 1
        assert "id collision" in errors[0].reason
        assert "contracts/FHECounter.sol" in errors[0].reason
        assert errors[0].path == "contracts/zz/FHECounter.sol"
        assert registry.get("fhe-counter").contract_path == "contracts/FHECounter.sol"

    def test_discovery_error_exit_code(self):
        assert DiscoveryError("a.sol", "why").exit_code == 2
        assert str(DiscoveryError("a.sol", "why")) == "a.sol: why"


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class TestReconciliation:
    def test_manual_fields_carried_forward(self, source_root):
        previous, _ = discover(source_root)
        manual = ManualFields(
            npm_dependencies={"@openzeppelin/contracts": "^5.0.0"},
            dependencies=["contracts/basic/encryption/mocks/Util.sol"],
        )
        previous = _with_manual(previous, "encrypt-single-value", manual)

        registry, _ = discover(source_root, previous)
        assert registry.get("encrypt-single-value").manual == manual

    def test_derived_fields_replaced(self, source_root):
        previous, _ = discover(source_root)
        (source_root / "contracts" / "FHECounter.sol").write_text(
            "/// @notice Updated text.\ncontract FHECounter {}\n"
        )
        registry, _ = discover(source_root, previous)
        assert registry.get("fhe-counter").description == "Updated text."

    def test_removed_ids_reported(self, source_root):
        stale = ArtifactDescriptor(
            id="gone",
            derived=DerivedFields(
                contract="contracts/Gone.sol",
                test="test/Gone.ts",
                description="Gone.",
                category="Uncategorized",
                title="Gone",
            ),
        )
        previous = Registry(artifacts={"gone": stale})
        result = discover_tree(source_root, previous)
        assert result.removed == ["gone"]
        assert "gone" not in result.registry
        assert result.ok

    def test_idempotent_output(self, source_root):
        first, _ = discover(source_root)
        second, _ = discover(source_root, first)
        assert serialize_registry(first) == serialize_registry(second)

    def test_category_counts(self, source_root):
        result = discover_tree(source_root)
        assert result.category_counts() == {"Basic - Encryption": 2, "Uncategorized": 1}


# ---------------------------------------------------------------------------
# category_from_path
# ---------------------------------------------------------------------------


class TestCategoryFromPath:
    @pytest.mark.parametrize(
        "rel, expected",
        [
            ("FHECounter.sol", "Uncategorized"),
            ("basic/X.sol", "Basic"),
            ("basic/encryption/X.sol", "Basic - Encryption"),
            ("basic/fhe-operations/X.sol", "Basic - FHE Operations"),
        ],
    )
    def test_categories(self, rel, expected):
        assert category_from_path(PurePosixPath(rel)) == expected
