"""Deployment script generation.

Produces ``deploy/deploy.ts`` for the selected contracts.  Constructor
parameters are discovered statically from each contract's source; every
parameter becomes a typed placeholder argument the user is expected to edit,
and contracts without a constructor deploy with no arguments.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from example_factory.registry.models import ArtifactDescriptor
from example_factory.registry.natspec import constructor_params

from .templates import TemplateRenderer

DEPLOY_TEMPLATE = "deploy/deploy.ts.j2"
DEPLOY_SCRIPT_PATH = "deploy/deploy.ts"


class DeployParam(BaseModel):
    """A constructor argument placeholder."""

    name: str
    type: str
    placeholder: str


class DeployTarget(BaseModel):
    """One contract deployed by the generated script."""

    name: str
    params: list[DeployParam] = Field(default_factory=list)


def placeholder_for(solidity_type: str) -> str:
    """Return a TypeScript placeholder expression for a Solidity type."""
    base = solidity_type.split()[0]
    if base.endswith("]"):
        return "[]"
    if base == "address":
        return "deployer"
    if base == "bool":
        return "false"
    if base == "string":
        return '""'
    if re.fullmatch(r"u?int\d*", base):
        return "0"
    fixed_bytes = re.fullmatch(r"bytes(\d+)", base)
    if fixed_bytes:
        return f'"0x{"00" * int(fixed_bytes.group(1))}"'
    if base == "bytes":
        return '"0x"'
    return "undefined"


def deploy_target(artifact: ArtifactDescriptor, source: str) -> DeployTarget:
    """Build the deploy entry for *artifact* given its contract *source*."""
    params = constructor_params(source, artifact.contract_name) or []
    return DeployTarget(
        name=artifact.contract_name,
        params=[
            DeployParam(name=p.name, type=p.type, placeholder=placeholder_for(p.type))
            for p in params
        ],
    )


def render_deploy_script(
    artifacts: list[ArtifactDescriptor],
    source_root: Path,
    renderer: Optional[TemplateRenderer] = None,
    func_id: str = "",
) -> str:
    """Render the deploy script for *artifacts* (in order).

    Raises:
        FileNotFoundError: If a contract source file is missing.
    """
    renderer = renderer or TemplateRenderer()
    targets = [
        deploy_target(a, (source_root / a.contract_path).read_text(encoding="utf-8"))
        for a in artifacts
    ]
    if not func_id:
        func_id = "deploy_" + "_".join(t.name.lower() for t in targets)
    return renderer.render(
        DEPLOY_TEMPLATE,
        {"targets": [t.model_dump() for t in targets], "func_id": func_id},
    )
