from .errors import (
    ConstructionError,
    MalformedJsonError,
    PropertyAssignmentError,
    SchemaLibraryError,
    SchemaNotFoundError,
    UnknownClassError,
    UnknownEnumMemberError,
    UnknownPropertyError,
    UnsupportedTypeError,
    ValidationFailedError,
    ValidationReason,
)
from .reflection import PropertyHint, PropertyInfo, PropertyUsage, ReflectionSource, TypeTag
from .kinds import ClassDescriptor, EnumDescriptor, KindTag, PropertyDescriptor, PropertyKind
from .type_resolver import describe_class, resolve_property_kind
from .compiled_schema import CompiledSchema
from .schema_builder import SchemaBuilder, SchemaDefinitions
from .validator import SchemaValidator
from .instantiator import Instantiator
from .response_format import open_ai_response_format, response_format_json
from .schema_library import SchemaLibrary, parse_json_text
from .python_host import (
    AABB,
    Basis,
    Color,
    HostClassRegistry,
    Plane,
    Projection,
    Quaternion,
    Rect2,
    Rect2i,
    Rid,
    Transform2D,
    Transform3D,
    Vector2,
    Vector2i,
    Vector3,
    Vector3i,
    Vector4,
    Vector4i,
)
from .config import ChatSettings, SchemaEnv, load_env
from .logging_utils import create_logger, log_exception
from .chat_client import ChatCompletionClient, ChatCompletionError, build_messages
from .structured_output import arequest_structured_output, request_structured_output

__version__ = "0.1.0"
