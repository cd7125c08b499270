#!/usr/bin/env python3
"""
Legacy Activity Migration

Rewrites legacy workflow activity sources in place so they compile
against the ActivityFlow engine. All rewrites are plain text passes; the
class modifier pass uses tree-sitter only to locate the class.
"""

import logging
import re
from pathlib import Path
from typing import List, Union

from migration_config import MIGRATION_CONFIG
from member_migrator import find_first_class, get_child_by_type, get_modifiers, get_parameters, node_text, parse_csharp
from project_file import ProjectFile

logger = logging.getLogger(__name__)

CODE_BEHIND = MIGRATION_CONFIG['code_behind']
PROJECT = MIGRATION_CONFIG['project']

VALIDATION_OPTION_PATTERN = re.compile(r'\[.*?ValidationOption.*?\]\s*\n')
WORKFLOW_USING_PATTERN = re.compile(r'using System\.Workflow.*?;\s*\n')


def remove_validation_option_attribute(text_content: str) -> str:
    """Remove [ValidationOption(...)] attribute lines"""
    return VALIDATION_OPTION_PATTERN.sub('', text_content)


def remove_workflow_using_statements(text_content: str) -> str:
    """Remove 'using System.Workflow...;' directives"""
    return WORKFLOW_USING_PATTERN.sub('', text_content)


def add_using_statements(text_content: str) -> str:
    """Insert the engine usings before the first using directive (or at the top)"""
    position = text_content.find('using ')
    if position == -1:
        position = 0
    usings = ''.join(f"using {namespace};\n" for namespace in MIGRATION_CONFIG['activity_usings'])
    return text_content[:position] + usings + text_content[position:]


def ensure_class_modifiers(text_content: str) -> str:
    """
    Normalise the modifiers of the activity class

    Abstract classes are left alone. Otherwise 'partial' is dropped (the
    designer half is deleted), and classes that do not implement
    Execute(ActivityExecutionContext) are made abstract.
    """
    source = text_content.encode('utf-8')
    tree = parse_csharp(text_content)
    class_node = find_first_class(tree.root_node)
    if class_node is None:
        return text_content

    if 'abstract' in get_modifiers(class_node, source):
        return text_content

    # (start, end, replacement) byte edits, applied back to front
    edits = []
    for child in class_node.children:
        if child.type == 'modifier' and node_text(child, source).strip() == 'partial':
            end = child.end_byte
            if source[end:end + 1] == b' ':
                end += 1
            edits.append((child.start_byte, end, b''))

    if not _implements_execute(class_node, source):
        logger.debug(f"Class '{node_text(class_node.child_by_field_name('name'), source)}' has no Execute, marking abstract")
        keyword = next(child for child in class_node.children if child.type == 'class')
        edits.append((keyword.start_byte, keyword.start_byte, b'abstract '))

    for start, end, replacement in sorted(edits, reverse=True):
        source = source[:start] + replacement + source[end:]
    return source.decode('utf-8')


def _implements_execute(class_node, source: bytes) -> bool:
    body = get_child_by_type(class_node, 'declaration_list')
    if body is None:
        return False

    for member in body.named_children:
        if member.type != 'method_declaration':
            continue
        if node_text(member.child_by_field_name('name'), source) != CODE_BEHIND['execute_method']:
            continue
        parameters = get_parameters(member)
        if not parameters:
            continue
        param_type = parameters[0].child_by_field_name('type')
        if param_type is not None and node_text(param_type, source).strip() == CODE_BEHIND['execution_context']:
            return True
    return False


def migrate_activity_source(text_content: str) -> str:
    """Apply every activity text pass"""
    text_content = remove_validation_option_attribute(text_content)
    text_content = remove_workflow_using_statements(text_content)
    text_content = add_using_statements(text_content)
    return ensure_class_modifiers(text_content)


class ActivityMigrator:
    """Migrates the legacy activities of one project directory"""

    def __init__(self, activity_project_path: Union[str, Path]):
        self.project = ProjectFile(activity_project_path)
        self.project_path = self.project.project_path

    def migrate(self) -> List[Path]:
        """
        Rewrite every activity source of the project

        Returns:
            Rewritten file paths
        """
        removed = self.project.remove_project_items(PROJECT['activity_designer_pattern'])
        logger.info(f"Removed {len(removed)} activity designer files")

        migrated = []
        for file_path in sorted(self.project_path.rglob(PROJECT['activity_code_pattern'])):
            content = file_path.read_text(encoding='utf-8-sig')
            file_path.write_text(migrate_activity_source(content), encoding='utf-8')
            migrated.append(file_path)
            print(f"  ✓ Migrated activity: {file_path}")

        self.project.delete_legacy_references()
        return migrated
