"""Tests for the XOML parser."""

import logging
from types import MappingProxyType

import pytest

from migration_errors import NamespaceLookupError, StructuralError
from xoml_parser import (
    BRANCH, CONDITION, CONDITIONAL, SEQUENCE, STEP,
    NamespaceBinding, XomlParser,
)


WORKFLOW = """<?xml version="1.0" encoding="utf-8"?>
<SequentialWorkflowActivity x:Class="Shop.Workflows.CartValidateWorkflow" x:Name="CartValidateWorkflow"
    xmlns:ns0="clr-namespace:Shop.Activities;Assembly=Shop.Activities"
    xmlns:x="http://schemas.microsoft.com/winfx/2006/xaml"
    xmlns="http://schemas.microsoft.com/winfx/2006/xaml/workflow">
    <ns0:ValidateLineItemsActivity x:Name="validateLineItemsActivity1">
        <ns0:ValidateLineItemsActivity.Warnings>
            <ns0:WarningCollection />
        </ns0:ValidateLineItemsActivity.Warnings>
    </ns0:ValidateLineItemsActivity>
    <IfElseActivity x:Name="ifElseActivity1">
        <IfElseBranchActivity x:Name="ifElseBranchActivity1">
            <IfElseBranchActivity.Condition>
                <CodeCondition Condition="HasDiscounts" />
            </IfElseBranchActivity.Condition>
            <ns0:CalculateDiscountsActivity x:Name="calculateDiscountsActivity1" />
        </IfElseBranchActivity>
        <IfElseBranchActivity x:Name="ifElseBranchActivity2" />
    </IfElseActivity>
    <FaultHandlersActivity x:Name="faultHandlersActivity1" />
</SequentialWorkflowActivity>
"""


@pytest.fixture
def document():
    return XomlParser().parse_string(WORKFLOW)


class TestActivityTree:
    def test_root_is_sequence(self, document):
        assert document.root.kind == SEQUENCE
        assert document.root.activity_name == "CartValidateWorkflow"

    def test_child_kinds_in_document_order(self, document):
        kinds = [(child.kind, child.local_name) for child in document.root.children]
        assert kinds == [
            (STEP, "ValidateLineItemsActivity"),
            (CONDITIONAL, "IfElseActivity"),
            (STEP, "FaultHandlersActivity"),
        ]

    def test_steps_are_leaves(self, document):
        step = document.root.children[0]
        assert step.prefix == "ns0"
        assert step.children == []

    def test_condition_wrapper_is_flattened(self, document):
        conditional = document.root.children[1]
        first, second = conditional.children
        assert first.kind == second.kind == BRANCH
        assert [child.kind for child in first.children] == [CONDITION, STEP]
        assert first.children[0].attributes["Condition"] == "HasDiscounts"
        assert second.children == []

    def test_rule_conditions_are_rejected(self):
        xoml = """
        <SequentialWorkflowActivity xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <IfElseActivity>
                <IfElseBranchActivity>
                    <IfElseBranchActivity.Condition>
                        <RuleConditionReference ConditionName='Condition1' />
                    </IfElseBranchActivity.Condition>
                </IfElseBranchActivity>
            </IfElseActivity>
        </SequentialWorkflowActivity>
        """
        with pytest.raises(StructuralError, match="RuleConditionReference"):
            XomlParser().parse_string(xoml)

    def test_root_must_be_sequential_workflow(self):
        xoml = "<StateMachineWorkflowActivity xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow' />"
        with pytest.raises(StructuralError, match="StateMachineWorkflowActivity"):
            XomlParser().parse_string(xoml)

    def test_parse_file(self, tmp_path):
        xoml_path = tmp_path / "CartValidateWorkflow.xoml"
        xoml_path.write_text(WORKFLOW, encoding="utf-8")
        document = XomlParser().parse_file(xoml_path)
        assert len(document.root.children) == 3

    def test_designer_assembly_qualified_namespace(self):
        xoml = """
        <SequentialWorkflowActivity
            xmlns:ns0='clr-namespace:Shop.Activities;Assembly=Shop.Activities, Version=1.0.0.0, Culture=neutral, PublicKeyToken=null'
            xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <ns0:CalculateTotalsActivity />
        </SequentialWorkflowActivity>
        """
        document = XomlParser().parse_string(xoml)
        [step] = document.root.children
        assert step.namespace_uri.startswith("clr-namespace:Shop.Activities;Assembly=Shop.Activities, Version=")
        assert document.namespaces.resolve("ns0") == "Shop.Activities"

    def test_malformed_markup_is_rejected(self):
        xoml = """
        <SequentialWorkflowActivity xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <CodeActivity>
        </SequentialWorkflowActivity>
        """
        with pytest.raises(StructuralError, match="Malformed XOML"):
            XomlParser().parse_string(xoml)

    def test_malformed_file_is_rejected(self, tmp_path):
        xoml_path = tmp_path / "Broken.xoml"
        xoml_path.write_text("<SequentialWorkflowActivity><Unclosed></SequentialWorkflowActivity>", encoding="utf-8")
        with pytest.raises(StructuralError, match="Broken.xoml"):
            XomlParser().parse_file(xoml_path)

    def test_step_keeps_namespace_in_scope(self):
        xoml = """
        <SequentialWorkflowActivity xmlns:ns0='clr-namespace:A.B'
            xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <ns0:Y />
            <ns0:Z xmlns:ns0='clr-namespace:Other.Ns' />
        </SequentialWorkflowActivity>
        """
        first, second = XomlParser().parse_string(xoml).root.children
        assert first.namespace_uri == "clr-namespace:A.B"
        assert second.namespace_uri == "clr-namespace:Other.Ns"

    def test_composite_step_children_are_reported(self, caplog):
        xoml = """
        <SequentialWorkflowActivity xmlns:ns0='clr-namespace:A.B'
            xmlns:x='http://schemas.microsoft.com/winfx/2006/xaml'
            xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <SequenceActivity x:Name='sequenceActivity1'>
                <ns0:First />
                <ns0:Second />
            </SequenceActivity>
        </SequentialWorkflowActivity>
        """
        with caplog.at_level(logging.WARNING):
            document = XomlParser().parse_string(xoml)
        assert document.root.children[0].children == []
        assert "'sequenceActivity1' contains child activities that are not migrated: First, Second" in caplog.text

    def test_property_elements_of_steps_are_not_reported(self, caplog):
        with caplog.at_level(logging.WARNING):
            XomlParser().parse_string(WORKFLOW)
        assert "not migrated" not in caplog.text


class TestNamespaceBinding:
    def test_document_declarations(self, document):
        assert document.namespaces.resolve("ns0") == "Shop.Activities"
        assert document.namespaces.declarations[None] == "http://schemas.microsoft.com/winfx/2006/xaml/workflow"

    def test_qualify(self, document):
        assert document.namespaces.qualify("CalculateDiscountsActivity", "ns0") == "Shop.Activities.CalculateDiscountsActivity"
        assert document.namespaces.qualify("CodeActivity", None) == "CodeActivity"

    def test_nested_declarations_are_collected(self):
        xoml = """
        <SequentialWorkflowActivity xmlns='http://schemas.microsoft.com/winfx/2006/xaml/workflow'>
            <ns1:AuditActivity xmlns:ns1='clr-namespace:Shop.Auditing' />
        </SequentialWorkflowActivity>
        """
        document = XomlParser().parse_string(xoml)
        assert document.namespaces.resolve("ns1") == "Shop.Auditing"

    def test_undeclared_prefix(self):
        binding = NamespaceBinding(MappingProxyType({}))
        with pytest.raises(NamespaceLookupError, match="not declared"):
            binding.resolve("ns9")

    def test_uri_without_marker(self, document):
        with pytest.raises(NamespaceLookupError, match="clr-namespace"):
            document.namespaces.resolve("x")

    def test_empty_clr_namespace(self):
        binding = NamespaceBinding(MappingProxyType({"ns0": "clr-namespace:;assembly=Foo"}))
        with pytest.raises(NamespaceLookupError, match="empty"):
            binding.resolve("ns0")

    def test_binding_is_read_only(self, document):
        with pytest.raises(TypeError):
            document.namespaces.declarations["ns2"] = "clr-namespace:Other"
