#!/usr/bin/env python3
"""
Legacy Workflow Migration

Turns each XOML workflow (markup + code-behind) of a project into an
ActivityFlow class: the markup becomes the fluent expression returned by
Configure(), the code-behind members are migrated onto the new class.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from lxml import etree

from class_renderer import ClassRenderer
from flow_generator import ActivityFlowGenerator
from member_migrator import MemberDescriptor, MemberMigrator
from migration_config import (
    MIGRATION_CONFIG, get_canonical_workflow_name, get_type_name, is_legacy_workflow,
)
from migration_errors import ProjectFileError
from project_file import ProjectFile
from xoml_parser import XomlParser

logger = logging.getLogger(__name__)

CODE_BEHIND = MIGRATION_CONFIG['code_behind']
PROJECT = MIGRATION_CONFIG['project']

NAMESPACE_PATTERN = re.compile(r'namespace (.*?)[\s{]')
CLASS_NAME_PATTERN = re.compile(r'partial class (.*?) :')


@dataclass
class ClassSkeleton:
    """Migrated workflow class without members"""
    name: str
    display_name: str
    legacy_mode: bool = False
    base_type: str = field(default_factory=lambda: get_type_name('activity_flow'))
    attribute_type: str = field(default_factory=lambda: get_type_name('configuration_attribute'))


@dataclass
class WorkflowUnit:
    """One legacy workflow to migrate"""
    code_behind: str
    xoml_path: Path
    namespace: str
    name: str
    directory: Optional[Path] = None


@dataclass
class TranspileResult:
    """Everything needed to render a migrated workflow class"""
    skeleton: ClassSkeleton
    namespace: str
    expression: str
    members: List[MemberDescriptor] = field(default_factory=list)
    usings: List[str] = field(default_factory=list)


def build_class(name: str) -> ClassSkeleton:
    """
    Class skeleton of a migrated workflow

    The configuration attribute carries the canonical engine name of
    well-known workflows and flags legacy-mode workflows.
    """
    return ClassSkeleton(
        name=name,
        display_name=get_canonical_workflow_name(name),
        legacy_mode=is_legacy_workflow(name),
    )


class WorkflowConfig:
    """
    Workflow registrations of an application config file

    Entries look like <add name="CartValidate" type="Ns.CartValidateWorkflow, Assembly"/>.
    """

    def __init__(self, config_path: Union[str, Path]):
        tree = etree.parse(str(config_path))
        self.entries: Dict[str, str] = {}
        for elem in tree.getroot().iter():
            if not isinstance(elem.tag, str) or etree.QName(elem).localname != 'add':
                continue
            type_name, name = elem.get('type'), elem.get('name')
            if type_name and name:
                self.entries[type_name] = name

    def find_name(self, namespace: str, class_name: str) -> Optional[str]:
        """Registered name of Ns.ClassName, if any"""
        needle = f"{namespace}.{class_name},"
        for type_name, name in self.entries.items():
            if needle in type_name:
                return name
        return None


class WorkflowMigrator:
    """
    Migrates the XOML workflows of one project directory

    Each workflow unit is transpiled independently; generator state never
    outlives a single transpile() call.
    """

    def __init__(self, workflow_project_path: Union[str, Path],
                 workflow_config: Optional[Union[str, Path]] = None,
                 strict_conditions: bool = False,
                 template_dir: Optional[Union[str, Path]] = None):
        self.project = ProjectFile(workflow_project_path)
        self.project_path = self.project.project_path
        self.config = WorkflowConfig(workflow_config) if workflow_config else None

        self.parser = XomlParser()
        self.generator = ActivityFlowGenerator(strict_conditions=strict_conditions)
        self.member_migrator = MemberMigrator()
        self.renderer = ClassRenderer(template_dir=template_dir)

    def transpile(self, unit: WorkflowUnit) -> TranspileResult:
        """
        Transpile one workflow unit

        Args:
            unit: Workflow markup location and code-behind source

        Returns:
            TranspileResult with expression, members and class skeleton
        """
        document = self.parser.parse_file(unit.xoml_path)
        expression = self.generator.generate(document)
        members = self.member_migrator.migrate(unit.code_behind)
        usings = self.member_migrator.collect_usings(unit.code_behind)
        logger.debug(f"Transpiled {unit.name}: {expression.count('.Do<')} steps, {len(members)} members")

        return TranspileResult(
            skeleton=build_class(unit.name),
            namespace=unit.namespace,
            expression=expression,
            members=members,
            usings=usings,
        )

    def migrate(self) -> List[Path]:
        """
        Migrate every workflow of the project and drop the legacy files

        Returns:
            Paths of the generated C# files
        """
        generated = [
            self.migrate_file(code_file)
            for code_file in sorted(self.project_path.rglob(PROJECT['workflow_code_pattern']))
        ]

        # Delete legacy workflow files
        self.project.remove_project_items(PROJECT['workflow_items_pattern'])
        self.project.delete_legacy_references()
        return generated

    def migrate_file(self, code_file: Path) -> Path:
        """Migrate the workflow whose code-behind is code_file (Foo.xoml.cs)"""
        text_content = code_file.read_text(encoding='utf-8-sig')
        xoml_file_name = code_file.stem  # Foo.xoml

        match = NAMESPACE_PATTERN.search(text_content)
        namespace = match.group(1) if match else CODE_BEHIND['default_namespace']
        match = CLASS_NAME_PATTERN.search(text_content)
        class_name = match.group(1) if match else Path(xoml_file_name).stem

        name = class_name
        if self.config is not None:
            name = self.config.find_name(namespace, class_name) or class_name

        unit = WorkflowUnit(
            code_behind=text_content,
            xoml_path=self._find_xoml(code_file.parent, xoml_file_name),
            namespace=namespace,
            name=name,
            directory=code_file.parent,
        )

        print(f"Migrating workflow: {unit.name}")
        result = self.transpile(unit)
        print(f"  Members: {len(result.members)}")

        output_path = self.renderer.render_to_file(result, code_file.parent / f"{unit.name}.cs")
        self.project.add_file(output_path)
        print(f"  ✓ Generated: {output_path}")
        return output_path

    def _find_xoml(self, directory: Path, xoml_file_name: str) -> Path:
        candidates = sorted(directory.rglob(xoml_file_name))
        if len(candidates) != 1:
            raise ProjectFileError(
                f"Expected exactly one '{xoml_file_name}' under {directory}, found {len(candidates)}"
            )
        return candidates[0]
