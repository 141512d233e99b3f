"""Tests for deploy script generation (example_factory.scaffolder.deploy_gen)."""

from __future__ import annotations

import pytest

from example_factory.resolver import resolve, resolve_category
from example_factory.scaffolder.deploy_gen import (
    DeployParam,
    deploy_target,
    placeholder_for,
    render_deploy_script,
)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------

pytestmark = pytest.mark.unit


class TestPlaceholders:
    @pytest.mark.parametrize(
        "solidity_type, expected",
        [
            ("address", "deployer"),
            ("bool", "false"),
            ("string", '""'),
            ("uint256", "0"),
            ("int8", "0"),
            ("uint", "0"),
            ("bytes32", '"0x' + "00" * 32 + '"'),
            ("bytes4", '"0x00000000"'),
            ("bytes", '"0x"'),
            ("uint256[]", "[]"),
            ("address[3]", "[]"),
            ("IERC20", "undefined"),
            ("address payable", "deployer"),
        ],
    )
    def test_placeholder_for(self, solidity_type, expected):
        assert placeholder_for(solidity_type) == expected


class TestDeployTarget:
    def test_constructor_params(self, registry, source_root):
        artifact = registry.get("encrypt-single-value")
        source = (source_root / artifact.contract_path).read_text()
        target = deploy_target(artifact, source)
        assert target.name == "EncryptSingleValue"
        assert target.params == [
            DeployParam(name="label_", type="string", placeholder='""'),
            DeployParam(name="owner_", type="address", placeholder="deployer"),
        ]

    def test_no_constructor(self, registry, source_root):
        artifact = registry.get("fhe-counter")
        target = deploy_target(artifact, (source_root / artifact.contract_path).read_text())
        assert target.params == []


class TestRenderDeployScript:
    def test_single_contract_without_constructor(self, registry, source_root):
        script = render_deploy_script(resolve(registry, ["fhe-counter"]).artifacts, source_root)
        assert 'import { DeployFunction } from "hardhat-deploy/types";' in script
        assert 'const deployedFHECounter = await deploy("FHECounter", {' in script
        assert "    args: []," in script
        assert 'func.id = "deploy_fhecounter";' in script
        assert 'func.tags = ["FHECounter"];' in script
        assert script.endswith("\n")

    def test_constructor_placeholders(self, registry, source_root):
        script = render_deploy_script(
            resolve(registry, ["encrypt-single-value"]).artifacts, source_root
        )
        assert '      "", // label_: string' in script
        assert "      deployer, // owner_: address" in script

    def test_category_one_block_per_contract(self, registry, source_root):
        bundle = resolve_category(registry, "basicencryption")
        script = render_deploy_script(bundle.artifacts, source_root)
        assert script.count("await deploy(") == 2
        assert script.index('deploy("EncryptMultipleValues"') < script.index(
            'deploy("EncryptSingleValue"'
        )
        assert 'func.tags = ["EncryptMultipleValues", "EncryptSingleValue"];' in script
        assert 'func.id = "deploy_encryptmultiplevalues_encryptsinglevalue";' in script

    def test_explicit_func_id(self, registry, source_root):
        script = render_deploy_script(
            resolve(registry, ["fhe-counter"]).artifacts, source_root, func_id="deploy_all"
        )
        assert 'func.id = "deploy_all";' in script

    def test_deterministic(self, registry, source_root):
        artifacts = resolve_category(registry, "basicencryption").artifacts
        assert render_deploy_script(artifacts, source_root) == render_deploy_script(
            artifacts, source_root
        )
