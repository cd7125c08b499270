#!/usr/bin/env python3
"""
ActivityFlow Class Renderer (Python + Jinja2)

Renders a transpiled workflow into the C# source of its ActivityFlow
class.
"""

from pathlib import Path
from typing import Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from migration_config import MIGRATION_CONFIG, get_type_name
from member_migrator import ConditionCallback, PlainMethod, Property


class ClassRenderer:
    """
    C# source renderer for migrated workflows

    Uses Jinja2 templates to render TranspileResult objects.
    """

    TEMPLATE_NAME = 'activity_flow.cs.jinja2'

    def __init__(self, template_dir: Optional[Union[str, Path]] = None):
        if template_dir is None:
            template_dir = Path(__file__).parent / 'templates'

        # Setup Jinja2 environment
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

        # Custom filters and member kind tests
        self.env.filters['escape_cs'] = self._escape_cs_string
        self.env.tests['plain_method'] = lambda member: isinstance(member, PlainMethod)
        self.env.tests['property'] = lambda member: isinstance(member, Property)
        self.env.tests['condition_callback'] = lambda member: isinstance(member, ConditionCallback)

    def _escape_cs_string(self, text):
        """Escape C# string literals"""
        if not text:
            return ""
        # Escape backslashes first
        text = text.replace('\\', '\\\\')
        text = text.replace('"', '\\"')
        text = text.replace('\n', '\\n')
        text = text.replace('\r', '\\r')
        text = text.replace('\t', '\\t')
        return text

    def render(self, result) -> str:
        """
        Render C# source of a transpiled workflow

        Args:
            result: TranspileResult of the workflow

        Returns:
            C# source text
        """
        template = self.env.get_template(self.TEMPLATE_NAME)
        return template.render(
            result=result,
            skeleton=result.skeleton,
            receiver=MIGRATION_CONFIG['expression']['receiver'],
            runner_type=get_type_name('activity_flow_runner'),
            event_args_type=get_type_name('conditional_event_args'),
            context_property_attribute=get_type_name('context_property_attribute'),
        )

    def render_to_file(self, result, output_path: Union[str, Path]) -> Path:
        """Render and write the C# source, creating parent directories"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.render(result))

        return output_path
