"""Enumeration types for formgraph."""

from enum import StrEnum


class ClientType(StrEnum):
    """Tenant variants that can override form definitions."""

    FDF = "FDF"
    ADHA = "ADHA"
    CASH = "CASH"
    OTHER = "OTHER"


class FormModule(StrEnum):
    """Domain modules that forms belong to."""

    ASSESSMENT = "assessment"
    PROJECT = "project"
    PROCUREMENT = "procurement"
    COMMITTEE = "committee"
    FINANCIAL = "financial"
    INVENTORY = "inventory"
    USER = "user"
    CLIENT = "client"
    SUPPLIER = "supplier"
    REPORT = "report"
    SETTINGS = "settings"
    CASE = "case"
    MANPOWER = "manpower"
    DRAWING = "drawing"
    COHORT = "cohort"
    PRICE_LIST = "price_list"
    PROGRAM = "program"
    ADMINISTRATION = "administration"


class FieldType(StrEnum):
    """Input types a form field can declare."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FILE = "file"
    IMAGE = "image"
    SIGNATURE = "signature"
    LOCATION = "location"
    PHONE = "phone"
    EMAIL = "email"
    PASSWORD = "password"
    HIDDEN = "hidden"
    CALCULATED = "calculated"
    LOOKUP = "lookup"
    REFERENCE = "reference"
    SECTION = "section"
    SUBSECTION = "subsection"
    REPEATER = "repeater"


class FormPermission(StrEnum):
    """Actions that can be granted to roles on a form."""

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    SUBMIT = "submit"
    PRINT = "print"
    EXPORT = "export"


class FieldValidationType(StrEnum):
    """Declarative validation rule types attached to a field."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN_VALUE = "minValue"
    MAX_VALUE = "maxValue"
    PATTERN = "pattern"
    EMAIL = "email"
    URL = "url"
    CUSTOM = "custom"


class FieldDependencyType(StrEnum):
    """Effects a field dependency can have on its field."""

    VISIBILITY = "visibility"
    REQUIREMENT = "requirement"
    VALUE = "value"
    OPTIONS = "options"
    VALIDATION = "validation"


class FormDependencyType(StrEnum):
    """Relationships between two forms."""

    PREREQUISITE = "prerequisite"
    REFERENCE = "reference"
    FOLLOWUP = "followup"
    WORKFLOW = "workflow"
    VALIDATION = "validation"
    DIRECT = "direct"
    DERIVED = "derived"


class DataSourceType(StrEnum):
    """Where a lookup field gets its options from."""

    STATIC = "static"
    API = "api"
    FUNCTION = "function"


class ConditionalOperator(StrEnum):
    """Operators for simple field/operator/value visibility rules."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


class ParameterDependencyType(StrEnum):
    """How a source parameter drives a target parameter."""

    DIRECT = "direct"
    DERIVED = "derived"
    CONDITIONAL = "conditional"
    VALIDATION = "validation"
    WORKFLOW = "workflow"


class ParameterChangeEventType(StrEnum):
    """Kinds of parameter change events."""

    VALUE_CHANGED = "value_changed"
    VISIBILITY_CHANGED = "visibility_changed"
    VALIDATION_CHANGED = "validation_changed"
    REQUIREMENT_CHANGED = "requirement_changed"
    OPTIONS_CHANGED = "options_changed"


class WorkflowStepStatus(StrEnum):
    """Progress states of a form within a workflow path."""

    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


class ValidationRuleType(StrEnum):
    """Rule types supported by the validation rule service."""

    REQUIRED = "required"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN_VALUE = "minValue"
    MAX_VALUE = "maxValue"
    PATTERN = "pattern"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    CUSTOM = "custom"
    DEPENDENT = "dependent"


class ValidationSeverity(StrEnum):
    """Severity of a validation issue."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
