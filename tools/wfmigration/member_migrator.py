#!/usr/bin/env python3
"""
Code-behind Member Migrator

Classifies the members of a legacy workflow code-behind class so they can
be re-emitted on the migrated ActivityFlow class:

- condition callbacks  void Foo(object sender, ConditionalEventArgs e)
  become parameterless bool methods returning e.Result
- properties become attributed auto-properties
- every other method is copied verbatim
"""

import logging
import textwrap
from dataclasses import dataclass
from typing import List, Optional, Union

import tree_sitter
import tree_sitter_c_sharp

from migration_config import MIGRATION_CONFIG
from migration_errors import NoTypeDeclarationError

logger = logging.getLogger(__name__)

CODE_BEHIND = MIGRATION_CONFIG['code_behind']

_CSHARP_LANGUAGE = tree_sitter.Language(tree_sitter_c_sharp.language())

VISIBILITY_MODIFIERS = ('public', 'protected', 'internal', 'private')


@dataclass(frozen=True)
class PlainMethod:
    """Method copied without changes"""
    raw_text: str


@dataclass(frozen=True)
class Property:
    """Property re-emitted as [ActivityFlowContextProperty] auto-property"""
    name: str
    type: str
    visibility: str
    sealed: bool
    dropped_accessor_logic: bool = False


@dataclass(frozen=True)
class ConditionCallback:
    """Condition handler rewritten to a parameterless bool method"""
    name: str
    event_args_local_name: str
    body_text: str
    visibility: str = 'private'


MemberDescriptor = Union[PlainMethod, Property, ConditionCallback]


def parse_csharp(source: str) -> tree_sitter.Tree:
    """Parse C# source text with tree-sitter"""
    parser = tree_sitter.Parser(_CSHARP_LANGUAGE)
    tree = parser.parse(source.encode('utf-8'))
    if tree.root_node.has_error:
        logger.warning("Tree-sitter reported parse errors in C# source")
    return tree


def node_text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode('utf-8', errors='replace')


def find_first_class(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """First class declaration in document order"""
    if node.type == 'class_declaration':
        return node
    for child in node.children:
        found = find_first_class(child)
        if found is not None:
            return found
    return None


def get_child_by_type(node: tree_sitter.Node, type_name: str) -> Optional[tree_sitter.Node]:
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def get_modifiers(node: tree_sitter.Node, source: bytes) -> List[str]:
    """Modifier keywords (public, static, override, virtual, ...) of a declaration"""
    return [node_text(child, source).strip() for child in node.children if child.type == 'modifier']


def get_parameters(method: tree_sitter.Node) -> List[tree_sitter.Node]:
    for child in method.children:
        if child.type == 'parameter_list':
            return [param for param in child.named_children if param.type == 'parameter']
    return []


def dedent_fragment(source: bytes, start_byte: int, end_byte: int) -> str:
    """
    Dedent the source span [start_byte, end_byte)

    Tree-sitter spans start at the first token, so the whitespace in front
    of it on its line is restored before dedenting. Spans that do not start
    a line keep their first line as is.
    """
    line_start = source.rfind(b'\n', 0, start_byte) + 1
    leading = source[line_start:start_byte]
    if leading.strip():
        leading = b''
    text = (leading + source[start_byte:end_byte]).decode('utf-8', errors='replace')
    return textwrap.dedent(text).strip('\n')


class MemberMigrator:
    """
    tree-sitter based migrator of workflow code-behind members

    Only methods and properties of the first class declaration are
    migrated. Fields, constructors, events and nested types are reported
    and left behind.
    """

    def migrate(self, class_body: str) -> List[MemberDescriptor]:
        """
        Classify the members of the code-behind class in source order

        Args:
            class_body: C# source holding the workflow class

        Returns:
            Ordered member descriptors
        """
        source = class_body.encode('utf-8')
        tree = parse_csharp(class_body)

        class_node = find_first_class(tree.root_node)
        if class_node is None:
            raise NoTypeDeclarationError("No type declaration found in workflow code-behind")

        members: List[MemberDescriptor] = []
        body = get_child_by_type(class_node, 'declaration_list')
        if body is None:
            return members

        # Comments directly above a member
        leading_comments = []
        for child in body.named_children:
            if child.type == 'comment':
                leading_comments.append(child)
                continue
            if child.type == 'method_declaration':
                members.append(self._migrate_method(child, source, leading_comments))
            elif child.type == 'property_declaration':
                members.append(self._migrate_property(child, source))
            else:
                logger.warning(f"Not migrating {child.type.replace('_', ' ')} at line {child.start_point.row + 1}")
            leading_comments = []

        return members

    def collect_usings(self, source_text: str) -> List[str]:
        """Namespaces imported by the code-behind, minus the legacy workflow ones"""
        source = source_text.encode('utf-8')
        tree = parse_csharp(source_text)
        usings = []
        self._collect_usings(tree.root_node, source, usings)
        return usings

    def _collect_usings(self, node: tree_sitter.Node, source: bytes, usings: List[str]):
        for child in node.children:
            if child.type == 'using_directive':
                text = node_text(child, source).strip()
                namespace = text[len('using'):].rstrip(';').strip()
                if not namespace.startswith(CODE_BEHIND['legacy_using_prefix']):
                    usings.append(namespace)
            elif child.type in ('namespace_declaration', 'file_scoped_namespace_declaration', 'declaration_list'):
                self._collect_usings(child, source, usings)

    def _migrate_method(self, method: tree_sitter.Node, source: bytes,
                        leading_comments: List[tree_sitter.Node]) -> MemberDescriptor:
        parameters = get_parameters(method)
        if len(parameters) > 1 and self._is_conditional_event_args(parameters[1], source):
            return self._migrate_condition_callback(method, parameters[1], source)

        # Verbatim methods keep their doc comments
        start = leading_comments[0] if leading_comments else method
        return PlainMethod(raw_text=dedent_fragment(source, start.start_byte, method.end_byte))

    def _is_conditional_event_args(self, parameter: tree_sitter.Node, source: bytes) -> bool:
        param_type = parameter.child_by_field_name('type')
        if param_type is None:
            return False
        type_name = node_text(param_type, source).strip()
        return type_name.split('.')[-1] == CODE_BEHIND['conditional_event_args']

    def _migrate_condition_callback(
        self, method: tree_sitter.Node, event_args: tree_sitter.Node, source: bytes
    ) -> ConditionCallback:
        name = node_text(method.child_by_field_name('name'), source)
        local_name = node_text(event_args.child_by_field_name('name'), source)

        visibility = ' '.join(m for m in get_modifiers(method, source) if m in VISIBILITY_MODIFIERS)
        logger.debug(f"Condition callback '{name}' rewritten to bool method")

        return ConditionCallback(
            name=name,
            event_args_local_name=local_name,
            body_text=self._body_statements(method, source),
            visibility=visibility or 'private',
        )

    def _body_statements(self, method: tree_sitter.Node, source: bytes) -> str:
        """Statements of a method body without the enclosing braces"""
        body = method.child_by_field_name('body')
        if body is None:
            body = get_child_by_type(method, 'block')
        if body is None:
            return ''

        if body.type == 'arrow_expression_clause':
            expression = body.named_children[0]
            return node_text(expression, source).strip() + ';'

        statements = body.named_children
        if not statements:
            return ''
        return dedent_fragment(source, statements[0].start_byte, statements[-1].end_byte)

    def _migrate_property(self, prop: tree_sitter.Node, source: bytes) -> Property:
        name = node_text(prop.child_by_field_name('name'), source)
        modifiers = [m.lower() for m in get_modifiers(prop, source)]

        dropped = self._has_accessor_logic(prop)
        if dropped:
            logger.warning(f"Accessor logic of property '{name}' is dropped, review the migrated property")

        return Property(
            name=name,
            type=node_text(prop.child_by_field_name('type'), source).strip(),
            visibility='private' if 'private' in modifiers else 'public',
            sealed='virtual' not in modifiers,
            dropped_accessor_logic=dropped,
        )

    def _has_accessor_logic(self, prop: tree_sitter.Node) -> bool:
        """True unless every accessor is a bare 'get;' / 'set;'"""
        # Expression body or initializer
        if prop.child_by_field_name('value') is not None:
            return True
        for child in prop.children:
            if child.type in ('arrow_expression_clause', 'equals_value_clause'):
                return True
            if child.type == 'accessor_list':
                for accessor in child.named_children:
                    if any(part.type in ('block', 'arrow_expression_clause') for part in accessor.children):
                        return True
        return False
