"""
Workflow Migration Configuration - Single Source of Truth

Fixed names used throughout the migration tool. The generated code refers
to the new ActivityFlow engine types by their fully qualified names, so
they are listed here instead of being looked up at runtime.

Usage:
    from migration_config import MIGRATION_CONFIG
    print(MIGRATION_CONFIG['types']['activity_flow'])
"""

ENGINE_NAMESPACE = 'Mediachase.Commerce.Engine'
COMPATIBILITY_NAMESPACE = 'Mediachase.Commerce.WorkflowCompatibility'

MIGRATION_CONFIG = {
    # Target types of the new engine
    'types': {
        'activity_flow': f'{ENGINE_NAMESPACE}.ActivityFlow',
        'activity_flow_runner': f'{ENGINE_NAMESPACE}.ActivityFlowRunner',
        'configuration_attribute': f'{ENGINE_NAMESPACE}.ActivityFlowConfigurationAttribute',
        'context_property_attribute': f'{ENGINE_NAMESPACE}.ActivityFlowContextPropertyAttribute',
        'conditional_event_args': f'{COMPATIBILITY_NAMESPACE}.ConditionalEventArgs',
    },

    # Usings added to migrated activity sources
    'activity_usings': [ENGINE_NAMESPACE, COMPATIBILITY_NAMESPACE],

    # XOML element names
    'xoml': {
        'sequence': 'SequentialWorkflowActivity',
        'conditional': 'IfElseActivity',
        'branch': 'IfElseBranchActivity',
        'condition_wrapper': 'IfElseBranchActivity.Condition',
        'condition': 'CodeCondition',
        'condition_attribute': 'Condition',
        'fault_handler': 'FaultHandlersActivity',
        'clr_namespace_marker': 'clr-namespace:',
    },

    # Fluent expression layout
    'expression': {
        'receiver': 'activityFlow',
        'indent_unit': 4,
        'initial_depth': 4,
    },

    # Code-behind recognition
    'code_behind': {
        'conditional_event_args': 'ConditionalEventArgs',
        'execution_context': 'ActivityExecutionContext',
        'execute_method': 'Execute',
        'legacy_using_prefix': 'System.Workflow',
        'default_namespace': 'Mediachase.Commerce.Workflow',
    },

    # Workflow naming
    'workflow_names': {
        'legacy_marker': 'Legacy',
        'canonical': {
            'CartCheckoutWorkflow': 'CartCheckout',
            'LegacyCartPrepareWorkflow': 'CartPrepare',
            'CartPrepareWorkflow': 'CartPrepare',
            'LegacyCartValidateWorkflow': 'CartValidate',
            'CartValidateWorkflow': 'CartValidate',
            'CheckAndReserveInstorePickupWorkflow': 'CheckAndReserveInstorePickup',
            'LegacyPOCalculateTotalsWorkflow': 'PurchaseOrderCalculateTotals',
            'POCalculateTotalsWorkflow': 'PurchaseOrderCalculateTotals',
            'POCompleteShipmentWorkflow': 'PurchaseOrderCompleteShipment',
            'LegacyPORecalculateWorkflow': 'PurchaseOrderRecalculate',
            'PORecalculateWorkflow': 'PurchaseOrderRecalculate',
            'POSaveChangesWorkflow': 'PurchaseOrderSaveChanges',
            'POSplitShipmentsWorkflow': 'PurchaseOrderSplitShipments',
            'ReturnFormCompleteWorkflow': 'ReturnFormComplete',
            'ReturnFormRecalculateWorkflow': 'ReturnFormRecalculate',
        },
    },

    # MSBuild project items
    'project': {
        'msbuild_namespace': 'http://schemas.microsoft.com/developer/msbuild/2003',
        'legacy_import': r'$(MSBuildToolsPath)\Workflow.Targets',
        'legacy_references': [
            'System.Workflow.Activities',
            'System.Workflow.ComponentModel',
            'System.Workflow.Runtime',
        ],
        'assembly_info': 'AssemblyInfo.cs',
        'workflow_code_pattern': '*.xoml.cs',
        'workflow_items_pattern': '*.xoml*',
        'activity_code_pattern': '*Activity*.cs',
        'activity_designer_pattern': '*Activity*.Designer.cs',
    },
}


def get_type_name(key: str) -> str:
    """Fully qualified engine type name for a config key"""
    return MIGRATION_CONFIG['types'][key]


def get_canonical_workflow_name(name: str) -> str:
    """Canonical engine name of a well-known legacy workflow, or name unchanged"""
    return MIGRATION_CONFIG['workflow_names']['canonical'].get(name, name)


def is_legacy_workflow(name: str) -> bool:
    """True when the workflow name carries the legacy marker (case-sensitive)"""
    return name.startswith(MIGRATION_CONFIG['workflow_names']['legacy_marker'])
