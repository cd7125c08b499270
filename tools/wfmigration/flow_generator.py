#!/usr/bin/env python3
"""
Activity Flow Expression Generator

Lowers a parsed XOML activity tree into the fluent ActivityFlow builder
chain returned by the migrated Configure() method:

    activityFlow
        .Do<Ns.First>()
        .If(() => Condition())
            .Do<Ns.A>()
        .Else()
            .Do<Ns.B>()
        .EndIf()

Generation is a single pass over the tree. All mutable state lives in a
GenerationState created per call.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from migration_config import MIGRATION_CONFIG
from migration_errors import StructuralError
from xoml_parser import (
    BRANCH, CONDITION, CONDITIONAL, SEQUENCE, STEP,
    ActivityNode, NamespaceBinding, XomlDocument, XomlParser, clr_namespace,
)

logger = logging.getLogger(__name__)

XOML = MIGRATION_CONFIG['xoml']
LAYOUT = MIGRATION_CONFIG['expression']


@dataclass
class GenerationState:
    """Machine state of one generation run"""
    depth: int = LAYOUT['initial_depth']
    pending_condition: bool = False
    output: List[str] = field(default_factory=list)

    def newline(self) -> str:
        return '\n' + ' ' * (LAYOUT['indent_unit'] * self.depth)

    def emit(self, text: str):
        self.output.append(text)

    def emit_line(self, text: str):
        self.output.append(self.newline())
        self.output.append(text)

    def indent(self):
        self.depth += 1

    def dedent(self):
        if self.depth == 0:
            raise StructuralError("Indentation depth cannot become negative")
        self.depth -= 1

    def text(self) -> str:
        return ''.join(self.output)


def extract_condition(node: ActivityNode) -> str:
    """Name of the boolean callback referenced by a CodeCondition"""
    return (node.attributes.get(XOML['condition_attribute']) or '').strip()


def qualify_step(node: ActivityNode, namespaces: NamespaceBinding) -> Optional[str]:
    """
    Fully qualified activity type of a step

    Returns None for the fault handler marker, which has no counterpart in
    the activity flow.
    """
    if node.local_name == XOML['fault_handler']:
        return None
    if node.prefix and node.namespace_uri is not None:
        return f"{clr_namespace(node.prefix, node.namespace_uri)}.{node.local_name}"
    return namespaces.qualify(node.local_name, node.prefix)


class ActivityFlowGenerator:
    """
    Fluent expression generator for XOML workflows

    Conditionals accept one branch (If ... EndIf) or two branches
    (If ... Else ... EndIf). The first branch opens '.If(() => ' and leaves
    the condition pending until its CodeCondition fills it in. A conditional
    that opens while a condition is pending supplies that condition text
    with its own nested '.If(' chain.
    """

    def __init__(self, strict_conditions: bool = False):
        """
        Args:
            strict_conditions: Reject If branches that end without a condition
                instead of leaving an empty '.If(() => )'
        """
        self.strict_conditions = strict_conditions

    def generate(self, document: XomlDocument) -> str:
        """
        Generate the activity flow expression of a workflow

        Args:
            document: Parsed XOML document

        Returns:
            Expression text starting with the flow receiver
        """
        root = document.root
        if root.kind != SEQUENCE:
            raise StructuralError(f"Workflow root must be a sequence, found '{root.local_name}'")

        state = GenerationState()
        state.emit(LAYOUT['receiver'])
        self._visit_children(root, document.namespaces, state)
        return state.text()

    def _visit_children(self, node: ActivityNode, namespaces: NamespaceBinding, state: GenerationState):
        for child in node.children:
            self._visit(child, namespaces, state)

    def _visit(self, node: ActivityNode, namespaces: NamespaceBinding, state: GenerationState):
        if node.kind == STEP:
            self._visit_step(node, namespaces, state)
        elif node.kind == CONDITIONAL:
            self._visit_conditional(node, namespaces, state)
        elif node.kind == CONDITION:
            self._visit_condition(node, state)
        elif node.kind == SEQUENCE:
            # Nested sequences add no structure of their own
            self._visit_children(node, namespaces, state)
        elif node.kind == BRANCH:
            raise StructuralError(
                f"Branch '{node.activity_name}' is not inside an {XOML['conditional']}"
            )

    def _visit_step(self, node: ActivityNode, namespaces: NamespaceBinding, state: GenerationState):
        type_name = qualify_step(node, namespaces)
        if type_name is None:
            logger.debug(f"Skipping fault handler '{node.activity_name}'")
            return
        state.emit_line(f".Do<{type_name}>()")

    def _visit_conditional(self, node: ActivityNode, namespaces: NamespaceBinding, state: GenerationState):
        branches = [child for child in node.children if child.kind == BRANCH]
        if len(branches) != len(node.children):
            raise StructuralError(
                f"Conditional '{node.activity_name}' may only contain {XOML['branch']} elements"
            )
        if not 1 <= len(branches) <= 2:
            raise StructuralError(
                f"Conditional '{node.activity_name}' has {len(branches)} branches, expected one or two"
            )

        if state.pending_condition:
            # Nested conditional fills in the condition of the enclosing If
            state.pending_condition = False

        self._open_if(state)
        self._visit_children(branches[0], namespaces, state)
        self._close_if(branches[0], state)

        if len(branches) == 2:
            state.dedent()
            state.emit_line(".Else()")
            state.indent()
            self._visit_children(branches[1], namespaces, state)

        state.dedent()
        state.emit_line(".EndIf()")

    def _open_if(self, state: GenerationState):
        state.emit_line(".If(() => ")
        state.pending_condition = True
        state.indent()

    def _close_if(self, branch: ActivityNode, state: GenerationState):
        if not state.pending_condition:
            return
        if self.strict_conditions:
            raise StructuralError(f"Branch '{branch.activity_name}' has no condition")
        logger.warning(f"Branch '{branch.activity_name}' has no condition, generating an empty If")
        state.pending_condition = False

    def _visit_condition(self, node: ActivityNode, state: GenerationState):
        if not state.pending_condition:
            logger.warning(f"Ignoring condition '{extract_condition(node)}' outside of an open If")
            return
        name = extract_condition(node)
        if name:
            state.emit(f"{name}())")
            state.pending_condition = False


def generate_activity_flow(content: Union[str, bytes], strict_conditions: bool = False) -> str:
    """Parse XOML markup and return its activity flow expression"""
    document = XomlParser().parse_string(content)
    return ActivityFlowGenerator(strict_conditions=strict_conditions).generate(document)
