"""Example Factory scaffolder -- turns resolved bundles into Hardhat projects.

Takes the skeleton template plus a ``ResolvedBundle`` and produces a
standalone, buildable project: the skeleton's placeholder example is removed,
the selected contracts, tests and support files are copied in, a deploy
script is generated and ``package.json`` is updated.

Quick usage::

    from example_factory.scaffolder import ProjectMaterializer

    materializer = ProjectMaterializer(config)
    result = await materializer.materialize_new(
        config.skeleton_path, resolve(registry, ["fhe-counter"]), "/tmp/fhe-counter"
    )
"""

from example_factory.scaffolder.materializer import MaterializationResult, ProjectMaterializer
from example_factory.scaffolder.plan import (
    FileOperation,
    MaterializationPlan,
    OperationKind,
    build_copy_operations,
    build_plan,
)
from example_factory.scaffolder.runner import PostScaffoldReport, run_post_scaffold
from example_factory.scaffolder.templates import TemplateRenderer

__all__ = [
    "FileOperation",
    "MaterializationPlan",
    "MaterializationResult",
    "OperationKind",
    "PostScaffoldReport",
    "ProjectMaterializer",
    "TemplateRenderer",
    "build_copy_operations",
    "build_plan",
    "run_post_scaffold",
]
