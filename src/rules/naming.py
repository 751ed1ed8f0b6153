"""Naming rule: kebab-case module folders, required role files and suffixes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.report import RULE_NAMING, ViolationKind
from rules.engine import Rule
from structure.project import NamingToken
from utils import is_kebab_case

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from structure.project import ModuleDescriptor, ProjectModel


def module_naming_tokens(module: ModuleDescriptor) -> list[NamingToken]:
    """Tag the module's own folder and its files with naming compliance."""
    tokens = [
        NamingToken(
            segment=module.name,
            path=module.path,
            compliant=is_kebab_case(module.name),
            reason="" if is_kebab_case(module.name) else "folder name is not kebab-case",
        )
    ]
    for relative in module.nested_directories:
        segment = relative.rsplit("/", 1)[-1]
        if not is_kebab_case(segment):
            tokens.append(
                NamingToken(
                    segment=segment,
                    path=f"{module.path}/{relative}",
                    compliant=False,
                    reason="folder name is not kebab-case",
                )
            )
    for module_file in module.files:
        if module_file.role is None and not module_file.auxiliary:
            tokens.append(
                NamingToken(
                    segment=module_file.name,
                    path=module_file.path,
                    compliant=False,
                    reason="file carries no recognised module suffix",
                )
            )
            continue
        if module_file.prefix and module_file.suffix and not is_kebab_case(module_file.prefix):
            tokens.append(
                NamingToken(
                    segment=module_file.name,
                    path=module_file.path,
                    compliant=False,
                    reason=f"file prefix '{module_file.prefix}' is not kebab-case",
                )
            )
    return tokens


class NamingRule(Rule):
    rule_id = RULE_NAMING
    kind = ViolationKind.NAMING
    description = "Kebab-case module folders, one file per required role, required suffixes"
    scope = "module"

    def check_module(self, module: ModuleDescriptor, model: ProjectModel) -> Iterator[Violation]:
        roles_by_file = {f.path: f.role for f in module.files}
        for token in module_naming_tokens(module):
            if token.compliant:
                continue
            yield self.violation(
                file=token.path,
                module=module.qualified_name,
                role=roles_by_file.get(token.path),
                message=f"'{token.segment}': {token.reason}",
            )

        extension = self.config.layout.source_extensions[0]
        for role in module.missing_roles(self.config.layout.required_roles):
            expected = f"{module.name}.{role}{extension}"
            yield self.violation(
                file=f"{module.path}/{expected}",
                module=module.qualified_name,
                role=role,
                message=f"module '{module.qualified_name}' is missing its {role} file ({expected})",
            )


__all__ = ["NamingRule", "module_naming_tokens"]
