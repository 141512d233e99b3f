"""Shared pytest fixtures for the Example Factory test suite.

Provides reusable fixtures for:
- A sample example source tree (contracts, mirrored tests, shared mocks)
- A skeleton Hardhat template
- A foreign Hardhat host project
- Config instances pointing at the above
- Mock subprocess helpers
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from example_factory.config import Config


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------

COUNTER_SOL = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    import { FHE, euint32, externalEuint32 } from "@fhevm/solidity/lib/FHE.sol";

    /// @title A simple FHE counter contract
    /// @notice A very basic example contract showing how to work with encrypted data using FHEVM.
    contract FHECounter {
        euint32 private _count;

        function getCount() external view returns (euint32) {
            return _count;
        }
    }
""")

ENCRYPT_SOL = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    import { Util } from "./mocks/Util.sol";

    /**
     * @title EncryptSingleValue
     * @notice Demonstrates encrypting a single value
     *   and storing it on chain.
     * @dev See the tests for usage.
     */
    contract EncryptSingleValue {
        string public label;
        address public owner;

        constructor(string memory label_, address owner_) {
            label = label_;
            owner = owner_;
        }
    }
""")

ENCRYPT_MULTI_SOL = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    /// @notice Encrypts several values in one transaction.
    contract EncryptMultipleValues {
        uint256 public total;
    }
""")

UTIL_SOL = textwrap.dedent("""\
    // SPDX-License-Identifier: BSD-3-Clause-Clear
    pragma solidity ^0.8.24;

    library Util {
        function one() internal pure returns (uint256) {
            return 1;
        }
    }
""")


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Source tree
# ---------------------------------------------------------------------------

@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    """Example source tree with three admissible contracts and a mocks dir.

    Layout::

        contracts/FHECounter.sol                             (Uncategorized)
        contracts/basic/encryption/EncryptSingleValue.sol    (Basic - Encryption)
        contracts/basic/encryption/EncryptMultipleValues.sol (Basic - Encryption)
        contracts/basic/encryption/mocks/Util.sol            (support file)
        test/<mirrored>.ts
    """
    root = tmp_path / "source"
    _write(root / "contracts" / "FHECounter.sol", COUNTER_SOL)
    _write(root / "test" / "FHECounter.ts", "// counter test\n")
    _write(root / "contracts" / "basic" / "encryption" / "EncryptSingleValue.sol", ENCRYPT_SOL)
    _write(root / "test" / "basic" / "encryption" / "EncryptSingleValue.ts", "// single test\n")
    _write(
        root / "contracts" / "basic" / "encryption" / "EncryptMultipleValues.sol",
        ENCRYPT_MULTI_SOL,
    )
    _write(root / "test" / "basic" / "encryption" / "EncryptMultipleValues.ts", "// multi test\n")
    _write(root / "contracts" / "basic" / "encryption" / "mocks" / "Util.sol", UTIL_SOL)
    return root


# ---------------------------------------------------------------------------
# Skeleton & host projects
# ---------------------------------------------------------------------------

SKELETON_PACKAGE = {
    "name": "fhevm-hardhat-template",
    "description": "Hardhat-based template for developing FHEVM Solidity smart contracts",
    "version": "0.1.0",
    "dependencies": {"@fhevm/solidity": "^0.9.1"},
    "devDependencies": {
        "@fhevm/hardhat-plugin": "^0.3.0-1",
        "hardhat": "^2.26.0",
    },
    "overrides": {"minimatch": "^3.1.2", "glob": "^10.0.0"},
}

SKELETON_HARDHAT_CONFIG = textwrap.dedent("""\
    import "@fhevm/hardhat-plugin";
    import "@nomicfoundation/hardhat-ethers";
    import "./tasks/accounts";
    import "./tasks/FHECounter";
    import { HardhatUserConfig } from "hardhat/config";

    const config: HardhatUserConfig = {
      solidity: "0.8.27",
    };

    export default config;
""")


@pytest.fixture
def skeleton_dir(tmp_path: Path) -> Path:
    """A minimal copy of the FHEVM Hardhat template."""
    root = tmp_path / "skeleton"
    _write(root / "package.json", json.dumps(SKELETON_PACKAGE, indent=2) + "\n")
    _write(root / "hardhat.config.ts", SKELETON_HARDHAT_CONFIG)
    _write(root / "contracts" / "FHECounter.sol", "// placeholder\n")
    _write(root / "test" / "FHECounter.ts", "// placeholder test\n")
    _write(root / "test" / ".gitkeep", "")
    _write(root / "tasks" / "accounts.ts", "// task\n")
    _write(root / "LICENSE", "BSD-3-Clause-Clear\n")
    _write(root / ".github" / "workflows" / "ci.yml", "name: ci\n")
    _write(root / "node_modules" / "hardhat" / "index.js", "// dep\n")
    _write(root / "README.md", "# Template\n")
    return root


@pytest.fixture
def host_project(tmp_path: Path) -> Path:
    """A foreign Hardhat project that has never seen FHEVM."""
    root = tmp_path / "host"
    package = {
        "name": "my-app",
        "version": "1.0.0",
        "devDependencies": {"hardhat": "^2.22.0"},
    }
    _write(root / "package.json", json.dumps(package, indent=2) + "\n")
    _write(
        root / "hardhat.config.ts",
        'import "@nomicfoundation/hardhat-toolbox";\n'
        'import { HardhatUserConfig } from "hardhat/config";\n'
        "\n"
        "const config: HardhatUserConfig = { solidity: \"0.8.24\" };\n"
        "export default config;\n",
    )
    return root


@pytest.fixture
def config(source_root: Path, skeleton_dir: Path) -> Config:
    """Config rooted at the sample source tree, without git init."""
    return Config(source_root=source_root, skeleton_dir_override=skeleton_dir, init_git=False)


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

UTIL_PATH = "contracts/basic/encryption/mocks/Util.sol"


@pytest.fixture
def registry(source_root: Path):
    """Registry discovered from ``source_root`` with curated manual fields.

    Both encryption examples share ``Util.sol`` and ask for different
    versions of ``@openzeppelin/contracts``.
    """
    from example_factory.registry import ManualFields, Registry, discover

    discovered, errors = discover(source_root)
    assert errors == []
    artifacts = dict(discovered.artifacts)
    artifacts["encrypt-single-value"] = artifacts["encrypt-single-value"].model_copy(
        update={"manual": ManualFields(
            npm_dependencies={"@openzeppelin/contracts": "^5.0.0"},
            dependencies=[UTIL_PATH],
        )}
    )
    artifacts["encrypt-multiple-values"] = artifacts["encrypt-multiple-values"].model_copy(
        update={"manual": ManualFields(
            npm_dependencies={"@openzeppelin/contracts": "^5.1.0", "ethers": "^6.0.0"},
            dependencies=[UTIL_PATH],
        )}
    )
    return Registry(artifacts=artifacts)
