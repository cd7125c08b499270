#!/usr/bin/env python3
"""
XOML Parser for Workflow Migration

Parses legacy Windows Workflow Foundation XOML files and builds the
activity tree consumed by the activity flow generator.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

from lxml import etree

from migration_config import MIGRATION_CONFIG
from migration_errors import NamespaceLookupError, StructuralError

logger = logging.getLogger(__name__)

XOML = MIGRATION_CONFIG['xoml']

# Activity node kinds
SEQUENCE = 'sequence'
CONDITIONAL = 'conditional'
BRANCH = 'branch'
CONDITION = 'condition'
STEP = 'step'

KIND_BY_ELEMENT = {
    XOML['sequence']: SEQUENCE,
    XOML['conditional']: CONDITIONAL,
    XOML['branch']: BRANCH,
    XOML['condition']: CONDITION,
}


XML_ERRORS = etree.ErrorTypes
# Designer-written 'clr-namespace:Ns;Assembly=Ns, Version=...' URIs contain spaces
TOLERATED_XML_ERRORS = frozenset((XML_ERRORS.WAR_NS_URI, XML_ERRORS.WAR_NS_URI_RELATIVE))


def clr_namespace(prefix: Optional[str], uri: str) -> str:
    """Code namespace of a 'clr-namespace:<ns>[;assembly=...]' URI"""
    marker = XOML['clr_namespace_marker']
    index = uri.find(marker)
    if index < 0:
        raise NamespaceLookupError(
            f"Namespace prefix '{prefix}' is bound to '{uri}' which has no '{marker}' segment"
        )

    # 'clr-namespace:Foo.Bar;assembly=Foo' -> 'Foo.Bar'
    namespace = uri[index + len(marker):].split(';', 1)[0].strip()
    if not namespace:
        raise NamespaceLookupError(f"Namespace prefix '{prefix}' is bound to an empty clr-namespace")
    return namespace


@dataclass
class ActivityNode:
    """Element of a workflow definition tree"""
    kind: str
    local_name: str
    prefix: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List['ActivityNode'] = field(default_factory=list)
    # URI bound to prefix where the element is declared
    namespace_uri: Optional[str] = None

    @property
    def activity_name(self) -> str:
        """x:Name of the activity, falling back to its element name"""
        for key, value in self.attributes.items():
            if key == 'Name' or key.endswith('}Name'):
                return value
        return self.local_name


@dataclass(frozen=True)
class NamespaceBinding:
    """
    XML prefix to code namespace mapping of one XOML document

    Declarations are kept as written (prefix -> URI). Only URIs of the form
    'clr-namespace:<ns>[;assembly=...]' resolve to a code namespace.
    """
    declarations: Mapping[Optional[str], str] = field(default_factory=dict)

    def resolve(self, prefix: str) -> str:
        """Code namespace bound to prefix"""
        uri = self.declarations.get(prefix)
        if uri is None:
            raise NamespaceLookupError(f"Namespace prefix '{prefix}' is not declared")
        return clr_namespace(prefix, uri)

    def qualify(self, local_name: str, prefix: Optional[str]) -> str:
        """Fully qualified type name of an element"""
        if not prefix:
            return local_name
        return f"{self.resolve(prefix)}.{local_name}"


@dataclass
class XomlDocument:
    """Parsed workflow definition"""
    root: ActivityNode
    namespaces: NamespaceBinding


class XomlParser:
    """
    XOML parser for activity flow generation

    Builds an ActivityNode tree from the document: the root sequence,
    IfElse conditionals, their branches, branch conditions and every other
    element as a terminal step. Property elements (dotted names) other than
    the branch condition wrapper carry no activities and are skipped.

    libxml2 rejects the assembly-qualified namespace URIs the workflow
    designer writes, so documents are read in recovery mode and every
    other parser error is raised afterwards.
    """

    def __init__(self):
        self.xml_parser = etree.XMLParser(recover=True)

    def parse_file(self, xoml_path: Union[str, Path]) -> XomlDocument:
        """
        Parse XOML file and return document

        Args:
            xoml_path: Path to XOML file

        Returns:
            XomlDocument with activity tree and namespace binding
        """
        tree = etree.parse(str(xoml_path), self.xml_parser)
        return self._build_document(self._checked_root(tree.getroot(), str(xoml_path)))

    def parse_string(self, content: Union[str, bytes]) -> XomlDocument:
        """Parse XOML markup held in memory"""
        if isinstance(content, str):
            # lxml rejects unicode strings that carry an encoding declaration
            content = content.strip().encode('utf-8')
        root = etree.fromstring(content, self.xml_parser)
        return self._build_document(self._checked_root(root, '<string>'))

    def _checked_root(self, root, source: str):
        for entry in self.xml_parser.error_log:
            if entry.type in TOLERATED_XML_ERRORS:
                logger.debug(f"{source}:{entry.line}: {entry.message.strip()}")
            elif entry.level >= etree.ErrorLevels.ERROR:
                raise StructuralError(f"Malformed XOML {source}:{entry.line}: {entry.message.strip()}")
        if root is None:
            raise StructuralError(f"Malformed XOML {source}: no root element")
        return root

    def _build_document(self, root) -> XomlDocument:
        local_name = etree.QName(root).localname
        if local_name != XOML['sequence']:
            raise StructuralError(
                f"Workflow root must be '{XOML['sequence']}', found '{local_name}'"
            )

        namespaces = self._collect_namespaces(root)
        document = XomlDocument(root=self._build_node(root), namespaces=namespaces)
        logger.debug(f"Parsed workflow '{document.root.activity_name}' "
                     f"({len(namespaces.declarations)} namespace declarations)")
        return document

    def _collect_namespaces(self, root) -> NamespaceBinding:
        """
        Collect prefix declarations of the whole document

        The first declaration of a prefix in document order wins. Steps are
        qualified through the declaration in scope where they appear
        (ActivityNode.namespace_uri); this table is the document-wide view.
        """
        declarations = {}
        for elem in root.iter():
            if not isinstance(elem.tag, str):
                continue
            for prefix, uri in elem.nsmap.items():
                declarations.setdefault(prefix, uri)
        return NamespaceBinding(MappingProxyType(declarations))

    def _build_node(self, elem) -> ActivityNode:
        local_name = etree.QName(elem).localname
        node = ActivityNode(
            kind=KIND_BY_ELEMENT.get(local_name, STEP),
            local_name=local_name,
            prefix=elem.prefix,
            attributes=dict(elem.attrib),
            namespace_uri=elem.nsmap.get(elem.prefix) if elem.prefix else None,
        )

        # Steps and conditions are leaves
        if node.kind in (STEP, CONDITION):
            if node.kind == STEP and local_name != XOML['fault_handler']:
                self._warn_nested_activities(elem, node)
            return node

        for child in elem:
            # Skip comments and processing instructions
            if not isinstance(child.tag, str):
                continue
            child_name = etree.QName(child).localname

            if child_name == XOML['condition_wrapper']:
                node.children.extend(self._parse_condition_wrapper(child))
            elif '.' in child_name:
                logger.debug(f"Skipping property element '{child_name}'")
            else:
                node.children.append(self._build_node(child))

        return node

    def _warn_nested_activities(self, elem, node: ActivityNode):
        nested = [
            etree.QName(child).localname for child in elem
            if isinstance(child.tag, str) and '.' not in etree.QName(child).localname
        ]
        if nested:
            logger.warning(
                f"Activity '{node.activity_name}' contains child activities that are not migrated: "
                f"{', '.join(nested)}"
            )

    def _parse_condition_wrapper(self, wrapper) -> List[ActivityNode]:
        """
        Parse <IfElseBranchActivity.Condition> content

        Only code conditions can be lowered to a callback call; declarative
        rule conditions are rejected.
        """
        conditions = []
        for child in wrapper:
            if not isinstance(child.tag, str):
                continue
            child_name = etree.QName(child).localname
            if child_name != XOML['condition']:
                raise StructuralError(
                    f"Unsupported branch condition '{child_name}' (only {XOML['condition']} can be migrated)"
                )
            conditions.append(self._build_node(child))
        return conditions
