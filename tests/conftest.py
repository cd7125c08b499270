"""Shared fixtures: a small legacy workflow project on disk."""

import pytest


CSPROJ = r"""<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="12.0" DefaultTargets="Build" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <ItemGroup>
    <Reference Include="System" />
    <Reference Include="System.Workflow.Activities" />
    <Reference Include="System.Workflow.ComponentModel" />
    <Reference Include="System.Workflow.Runtime" />
  </ItemGroup>
  <ItemGroup>
    <Compile Include="Activities\CalculateTotalsActivity.cs" />
    <Compile Include="Activities\CalculateTotalsActivity.Designer.cs">
      <DependentUpon>CalculateTotalsActivity.cs</DependentUpon>
    </Compile>
    <Compile Include="Properties\AssemblyInfo.cs" />
    <Compile Include="Workflows\CartValidateWorkflow.xoml.cs">
      <DependentUpon>CartValidateWorkflow.xoml</DependentUpon>
    </Compile>
    <Content Include="Workflows\CartValidateWorkflow.xoml" />
  </ItemGroup>
  <Import Project="$(MSBuildToolsPath)\Microsoft.CSharp.targets" />
  <Import Project="$(MSBuildToolsPath)\Workflow.Targets" />
</Project>
"""

ASSEMBLY_INFO = """using System.Reflection;
using System.Workflow.ComponentModel.Serialization;
using System.Runtime.InteropServices;

[assembly: AssemblyTitle("Shop.Workflows")]
"""

ACTIVITY = """using System;
using System.Workflow.ComponentModel;
using System.Workflow.ComponentModel.Compiler;

namespace Shop.Activities
{
    public partial class CalculateTotalsActivity : Activity
    {
        [ValidationOption(ValidationOption.Required)]
        public OrderGroup OrderGroup { get; set; }

        protected override ActivityExecutionStatus Execute(ActivityExecutionContext executionContext)
        {
            return ActivityExecutionStatus.Closed;
        }
    }
}
"""

ACTIVITY_DESIGNER = """namespace Shop.Activities
{
    public partial class CalculateTotalsActivity
    {
        private void InitializeComponent() { }
    }
}
"""

WORKFLOW_XOML = """<SequentialWorkflowActivity x:Class="Shop.Workflows.CartValidateWorkflow" x:Name="CartValidateWorkflow"
    xmlns:ns0="clr-namespace:Shop.Activities;Assembly=Shop.Activities, Version=1.0.0.0, Culture=neutral, PublicKeyToken=null"
    xmlns:x="http://schemas.microsoft.com/winfx/2006/xaml"
    xmlns="http://schemas.microsoft.com/winfx/2006/xaml/workflow">
    <ns0:ValidateLineItemsActivity x:Name="validateLineItemsActivity1" />
    <IfElseActivity x:Name="ifElseActivity1">
        <IfElseBranchActivity x:Name="ifElseBranchActivity1">
            <IfElseBranchActivity.Condition>
                <CodeCondition Condition="RunProcessPayment" />
            </IfElseBranchActivity.Condition>
            <ns0:ProcessPaymentActivity x:Name="processPaymentActivity1" />
        </IfElseBranchActivity>
        <IfElseBranchActivity x:Name="ifElseBranchActivity2">
            <ns0:SkipPaymentActivity x:Name="skipPaymentActivity1" />
        </IfElseBranchActivity>
    </IfElseActivity>
    <ns0:CalculateTotalsActivity x:Name="calculateTotalsActivity1" />
</SequentialWorkflowActivity>
"""

WORKFLOW_CODE_BEHIND = """using System;
using System.Workflow.ComponentModel;
using System.Workflow.Activities;
using Mediachase.Commerce.Orders;

namespace Shop.Workflows
{
    public partial class CartValidateWorkflow : SequentialWorkflowActivity
    {
        public OrderGroup OrderGroup { get; set; }

        public bool IsIgnoreProcessPayment { get; set; }

        private void RunProcessPayment(object sender, ConditionalEventArgs e)
        {
            e.Result = !this.IsIgnoreProcessPayment;
        }
    }
}
"""

WORKFLOW_CONFIG = """<?xml version="1.0"?>
<configuration>
  <Workflow>
    <Workflows>
      <add name="CartValidate" displayname="Cart Validate"
           type="Shop.Workflows.CartValidateWorkflow, Shop.Workflows" />
      <add name="LegacyCartPrepareWorkflow"
           type="Shop.Workflows.CartPrepareWorkflow, Shop.Workflows" />
    </Workflows>
  </Workflow>
</configuration>
"""


@pytest.fixture
def legacy_project(tmp_path):
    """Project directory with one legacy activity and one legacy workflow"""
    project = tmp_path / "Shop.Workflows"
    (project / "Activities").mkdir(parents=True)
    (project / "Properties").mkdir()
    (project / "Workflows").mkdir()

    (project / "Shop.Workflows.csproj").write_text(CSPROJ, encoding="utf-8")
    (project / "Properties" / "AssemblyInfo.cs").write_text(ASSEMBLY_INFO, encoding="utf-8")
    (project / "Activities" / "CalculateTotalsActivity.cs").write_text(ACTIVITY, encoding="utf-8")
    (project / "Activities" / "CalculateTotalsActivity.Designer.cs").write_text(ACTIVITY_DESIGNER, encoding="utf-8")
    (project / "Workflows" / "CartValidateWorkflow.xoml").write_text(WORKFLOW_XOML, encoding="utf-8")
    (project / "Workflows" / "CartValidateWorkflow.xoml.cs").write_text(WORKFLOW_CODE_BEHIND, encoding="utf-8")
    return project


@pytest.fixture
def workflow_config(tmp_path):
    config_path = tmp_path / "ecf.workflow.config"
    config_path.write_text(WORKFLOW_CONFIG, encoding="utf-8")
    return config_path
