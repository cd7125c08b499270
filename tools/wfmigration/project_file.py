#!/usr/bin/env python3
"""
MSBuild Project File Editing

Keeps the .csproj of a migrated project in sync with the files the
migration deletes and creates, and removes the legacy workflow build
references.
"""

import logging
import re
from pathlib import Path, PureWindowsPath
from typing import List, Union

from lxml import etree

from migration_config import MIGRATION_CONFIG
from migration_errors import ProjectFileError

logger = logging.getLogger(__name__)

PROJECT = MIGRATION_CONFIG['project']


def local_name(elem) -> str:
    return etree.QName(elem).localname


def find_file(project_path: Union[str, Path], pattern: str) -> Path:
    """First file under project_path matching pattern"""
    matches = sorted(Path(project_path).rglob(pattern))
    if not matches:
        raise ProjectFileError(f"No file matching '{pattern}' under {project_path}")
    return matches[0]


class ProjectFile:
    """
    Editor for the .csproj of one project directory

    Item paths are stored the way Visual Studio writes them: relative to
    the project directory, with backslash separators.
    """

    def __init__(self, project_path: Union[str, Path]):
        self.project_path = Path(project_path)
        if not self.project_path.is_dir():
            raise ProjectFileError(f"The following directory could not be found: {project_path}")

    @property
    def project_file(self) -> Path:
        return find_file(self.project_path, '*.csproj')

    def relative_include(self, file_path: Union[str, Path]) -> str:
        relative = Path(file_path).resolve().relative_to(self.project_path.resolve())
        return str(PureWindowsPath(*relative.parts))

    def _load(self):
        parser = etree.XMLParser(remove_blank_text=False)
        return etree.parse(str(self.project_file), parser)

    def _save(self, tree):
        tree.write(str(self.project_file), xml_declaration=True, encoding='utf-8')

    def remove_project_items(self, pattern: str) -> List[Path]:
        """
        Delete files matching pattern and their Compile/Content items

        Returns:
            Deleted file paths
        """
        tree = self._load()
        root = tree.getroot()
        removed = []

        for file_path in sorted(self.project_path.rglob(pattern)):
            if not file_path.is_file():
                continue
            include = self.relative_include(file_path)
            file_path.unlink()
            removed.append(file_path)

            for item in list(root.iter()):
                if not isinstance(item.tag, str):
                    continue
                if local_name(item) in ('Compile', 'Content') and item.get('Include') == include:
                    item.getparent().remove(item)
            logger.info(f"Removed project item {include}")

        self._save(tree)
        return removed

    def add_file(self, file_path: Union[str, Path]) -> str:
        """Add a Compile item for file_path to the first ItemGroup"""
        include = self.relative_include(file_path)
        tree = self._load()
        root = tree.getroot()

        item_group = next(
            (elem for elem in root.iter() if isinstance(elem.tag, str) and local_name(elem) == 'ItemGroup'),
            None,
        )
        if item_group is None:
            raise ProjectFileError(f"{self.project_file} has no ItemGroup")

        compile_item = etree.SubElement(item_group, f"{{{PROJECT['msbuild_namespace']}}}Compile")
        compile_item.set('Include', include)
        self._save(tree)
        logger.info(f"Added project item {include}")
        return include

    def delete_legacy_references(self):
        """Drop the workflow build import, System.Workflow references and usings"""
        tree = self._load()
        root = tree.getroot()

        for elem in list(root.iter()):
            if not isinstance(elem.tag, str):
                continue
            name = local_name(elem)
            if name == 'Import' and elem.get('Project') == PROJECT['legacy_import']:
                elem.getparent().remove(elem)
            elif name == 'Reference' and elem.get('Include') in PROJECT['legacy_references']:
                elem.getparent().remove(elem)
        self._save(tree)

        assembly_info = find_file(self.project_path, PROJECT['assembly_info'])
        content = assembly_info.read_text(encoding='utf-8-sig')
        assembly_info.write_text(re.sub(r'using System\.Workflow.*?;', '', content), encoding='utf-8')
