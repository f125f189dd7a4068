"""Resource type keys and workflow model tags shared by the generator."""

# Resource template types
RESOURCE_TYPE_AZURE_LOGIC_APP = "microsoft.workflows.azurelogicapp"

# Snippet resource types (dotted namespace, matched against the lower-cased node type)
RESOURCE_TYPE_WORKFLOW_DEFINITION = "workflow.definition"
RESOURCE_TYPE_WORKFLOW_PARAMETERS_DEFINITION = "workflow.parametersdefinition"
RESOURCE_TYPE_WORKFLOW_PARAMETER = "workflow.parameter"
RESOURCE_TYPE_WORKFLOW_PROPERTY = "workflow.property"
RESOURCE_TYPE_WORKFLOW_VARIABLE = "workflow.variable"
RESOURCE_TYPE_WORKFLOW_MESSAGE = "workflow.message"
RESOURCE_TYPE_WORKFLOW_CHANNEL_TRIGGER = "workflow.channel.trigger"
RESOURCE_TYPE_WORKFLOW_CHANNEL_RECEIVE = "workflow.channel.receive"
RESOURCE_TYPE_WORKFLOW_CHANNEL_SEND = "workflow.channel.send"
RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER = "workflow.activitycontainer"
RESOURCE_TYPE_WORKFLOW_ACTIVITY = "workflow.activity"

# Placeholders used when no type-specific snippet exists
RESOURCE_TYPE_WORKFLOW_VARIABLE_PLACEHOLDER = "workflow.placeholder.variable"
RESOURCE_TYPE_WORKFLOW_MESSAGE_PLACEHOLDER = "workflow.placeholder.message"
RESOURCE_TYPE_WORKFLOW_ACTIVITY_CONTAINER_PLACEHOLDER = "workflow.placeholder.activitycontainer"
RESOURCE_TYPE_WORKFLOW_ACTIVITY_PLACEHOLDER = "workflow.placeholder.activity"

# Resource template parameters naming the output files
PARAMETER_WORKFLOW_DEFINITION_FILE = "workflow_definition_file"
PARAMETER_WORKFLOW_PARAMETERS_FILE = "workflow_parameters_file"

# Workflow model tags
ACTIVITY_TYPE_RECEIVE = "Receive"
ACTIVITY_TYPE_SEND = "Send"
ACTIVITY_TYPE_DECISION_BRANCH = "DecisionBranch"
ACTIVITY_TYPE_WORKFLOW = "Workflow"

PROPERTY_UNIQUE_ID = "UniqueId"
PROPERTY_VALUE_ELSE = "Else"

# Keys a rendered snippet may carry
SNIPPET_WORKFLOW_DEFINITION_PARAMETER = "workflowDefinitionParameter"
SNIPPET_WORKFLOW_PARAMETER = "workflowParameter"
SNIPPET_ARM_TEMPLATE_PARAMETER = "armTemplateParameter"
SNIPPET_ARM_PARAMETER = "armParameter"
SNIPPET_WORKFLOW_RESOURCE_PROPERTY = "workflowResourceProperty"
SNIPPET_WORKFLOW_PROPERTY = "workflowProperty"
SNIPPET_WORKFLOW_TRIGGER = "workflowTrigger"
SNIPPET_WORKFLOW_DEFINITION_VARIABLE = "workflowDefinitionVariable"
SNIPPET_ARM_TEMPLATE_VARIABLE = "armTemplateVariable"
SNIPPET_WORKFLOW_DEFINITION_MESSAGE = "workflowDefinitionMessage"
SNIPPET_WORKFLOW_DEFINITION_ACTION = "workflowDefinitionAction"
SNIPPET_WORKFLOW_DEFINITION_ACTION_PATH = "workflowDefinitionActionPath"

# Structural paths into the generated documents
PATH_DEFINITION_ACTIONS = "$..definition.actions"
PATH_DEFINITION_PARAMETERS = "$..definition.parameters"
PATH_DEFINITION_TRIGGERS = "$..definition.triggers"
PATH_WORKFLOW_RESOURCE = "$.resources[?(@.type == 'Microsoft.Logic/workflows')]"
PATH_WORKFLOW_RESOURCE_PROPERTIES = PATH_WORKFLOW_RESOURCE + ".properties"
PATH_WORKFLOW_RESOURCE_PARAMETERS = PATH_WORKFLOW_RESOURCE + ".properties.parameters"
PATH_ARM_PARAMETERS = "$.parameters"
PATH_ARM_VARIABLES = "$.variables"
PATH_CASES = "$.cases"
PATH_DEFAULT_ACTIONS = "$.default.actions"
PATH_ACTIONS = "$.actions"

ACTION_TYPE_SWITCH = "Switch"
RUN_AFTER = "runAfter"
RUN_AFTER_SUCCEEDED = "Succeeded"

# Snippet files with these extensions are rendered; anything else is copied as is
TEMPLATE_EXTENSIONS = (".j2", ".jinja", ".liquid")
