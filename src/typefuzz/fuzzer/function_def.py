"""Function model, module loading and type-hint based signature reading.

Signatures are read from the type hints of already imported callables; no
source parsing takes place. Callers that bring their own analyzer can build
``FunctionDef`` objects directly from ``ArgumentDef.from_dict`` output.
"""

import collections.abc
import importlib
import importlib.util
import inspect
import sys
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from typefuzz.fuzzer.arg_def import ArgumentDef
from typefuzz.fuzzer.base_interfaces import ConfigurationError, TargetResolutionError
from typefuzz.fuzzer.data_models import ArgDefaults, ArgType, ValidationResult
from typefuzz.utils.logger import get_logger

logger = get_logger(__name__)

_SEQUENCE_ORIGINS = {list, tuple, collections.abc.Sequence, collections.abc.MutableSequence}


@dataclass(frozen=True)
class FunctionRef:
    """Name and location of a function."""
    name: str
    module: str

    def __str__(self) -> str:
        return f"{self.module}:{self.name}"


@dataclass
class FunctionDef:
    """Signature of a function under test."""
    name: str
    module: str
    args: List[ArgumentDef] = field(default_factory=list)
    is_void: bool = False

    @property
    def ref(self) -> FunctionRef:
        return FunctionRef(self.name, self.module)

    def get_arg_defs(self) -> List[ArgumentDef]:
        return list(self.args)

    def get_arg_defs_flat(self) -> List[Tuple[str, ArgumentDef]]:
        """Get (dotted path, argument) pairs for all arguments and children."""
        flat = []
        for arg in self.args:
            flat.extend(arg.flatten())
        return flat

    def apply_overrides(self, overrides: Dict[str, Dict[str, Any]]) -> None:
        """Apply constraint overrides keyed by argument path (e.g. ``point.x``).

        Raises:
            ConfigurationError: If a path does not name an argument
        """
        by_path = dict(self.get_arg_defs_flat())
        for path, override in overrides.items():
            if path not in by_path:
                raise ConfigurationError(
                    f"Function {self.name} has no argument {path!r}; "
                    f"known arguments: {sorted(by_path)}"
                )
            by_path[path].apply_override(override)
            logger.debug(f"Applied override to {self.name}.{path}: {override}")

    def validate(self) -> ValidationResult:
        """Validate every argument of the function."""
        result = ValidationResult(is_valid=True)
        names = [a.name for a in self.args]
        if len(names) != len(set(names)):
            result.add_error("Duplicate argument names found")
        for arg in self.args:
            result.merge(arg.validate(), f"Argument {arg.offset} ({arg.name})")
        return result

    @classmethod
    def from_callable(cls, fn: Callable, defaults: Optional[ArgDefaults] = None,
                      module: Optional[str] = None) -> 'FunctionDef':
        """Describe a callable from its signature and type hints.

        Args:
            fn: Function to describe
            defaults: Defaults for argument constraints
            module: Module identity to record; the function's module if None

        Returns:
            FunctionDef for the callable

        Raises:
            ConfigurationError: If a parameter cannot be described
        """
        defaults = defaults or ArgDefaults()
        name = getattr(fn, "__name__", repr(fn))
        signature = inspect.signature(fn)
        try:
            hints = typing.get_type_hints(fn)
        except (NameError, TypeError) as e:
            raise ConfigurationError(f"Cannot resolve type hints of {name}: {e}") from e

        args = []
        for param in signature.parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.kind == param.KEYWORD_ONLY:
                if param.default is param.empty:
                    raise ConfigurationError(
                        f"Keyword-only argument {param.name} of {name} has no default"
                    )
                continue
            if param.name not in hints:
                raise ConfigurationError(f"Argument {param.name} of {name} has no type hint")
            args.append(describe_annotation(param.name, len(args), hints[param.name], defaults))

        return_hint = hints.get("return", inspect.Signature.empty)
        return cls(
            name=name,
            module=module or getattr(fn, "__module__", "") or "",
            args=args,
            is_void=return_hint is None or return_hint is type(None),
        )


def describe_annotation(name: str, offset: int, annotation: Any,
                        defaults: ArgDefaults) -> ArgumentDef:
    """Map a type hint onto an ArgumentDef.

    Supported hints: ``bool``, ``int``, ``float``, ``str``, ``TypedDict``
    classes, lists/sequences of those (any depth) and ``Optional[...]`` of
    any of them.

    Raises:
        ConfigurationError: For unsupported hints
    """
    annotation, optional = _unwrap_optional(annotation, name)

    dimension = 0
    while _origin(annotation) in _SEQUENCE_ORIGINS:
        item_args = [a for a in typing.get_args(annotation) if a is not Ellipsis]
        if len(item_args) != 1:
            raise ConfigurationError(f"Argument {name}: sequences need exactly one item type")
        annotation = item_args[0]
        dimension += 1

    children = []
    if annotation is bool:
        arg_type = ArgType.BOOLEAN
    elif annotation in (int, float):
        arg_type = ArgType.NUMBER
    elif annotation is str:
        arg_type = ArgType.STRING
    elif typing.is_typeddict(annotation):
        arg_type = ArgType.OBJECT
        child_hints = typing.get_type_hints(annotation)
        required = getattr(annotation, "__required_keys__", frozenset(child_hints))
        for child_offset, (child_name, child_hint) in enumerate(child_hints.items()):
            child = describe_annotation(child_name, child_offset, child_hint, defaults)
            child.optional = child.optional or child_name not in required
            children.append(child)
    else:
        raise ConfigurationError(f"Argument {name}: unsupported type hint {annotation!r}")

    arg = ArgumentDef.create(
        name=name,
        offset=offset,
        arg_type=arg_type,
        defaults=defaults,
        dimension=dimension,
        optional=optional,
        children=children,
    )
    if annotation is int:
        arg.options.num_integer = True
    elif annotation is float:
        arg.options.num_integer = False
    return arg


def _origin(annotation: Any) -> Any:
    return typing.get_origin(annotation)


def _unwrap_optional(annotation: Any, name: str) -> Tuple[Any, bool]:
    origin = _origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        members = typing.get_args(annotation)
        non_none = [m for m in members if m is not type(None)]
        if len(non_none) != 1:
            raise ConfigurationError(f"Argument {name}: unions other than Optional are not supported")
        return non_none[0], len(non_none) != len(members)
    return annotation, False


# ------------------------------------------------------------------ loading

def load_module(module: Union[str, Path]) -> types.ModuleType:
    """Load a module fresh, reloading it if it was imported before.

    Args:
        module: Dotted module name or path to a ``.py`` file

    Returns:
        The freshly executed module

    Raises:
        TargetResolutionError: If the module cannot be loaded
    """
    importlib.invalidate_caches()
    path = Path(str(module))
    try:
        if path.suffix == ".py":
            return _load_from_path(path)
        if module in sys.modules:
            return importlib.reload(sys.modules[str(module)])
        return importlib.import_module(str(module))
    except TargetResolutionError:
        raise
    except (ImportError, SyntaxError, OSError) as e:
        raise TargetResolutionError(f"Could not load module {module}: {e}") from e


def _load_from_path(path: Path) -> types.ModuleType:
    if not path.is_file():
        raise TargetResolutionError(f"Module file not found: {path}")
    name = path.stem
    existing = sys.modules.get(name)
    if existing is not None and not _same_file(getattr(existing, "__file__", None), path):
        raise TargetResolutionError(
            f"Cannot load {path}: module name {name!r} is already used by another module"
        )
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise TargetResolutionError(f"Cannot load module from {path}")
    mod = importlib.util.module_from_spec(spec)
    # Registered so that values defined in the module can be pickled by reference
    sys.modules[name] = mod
    spec.loader.exec_module(mod)
    return mod


def _same_file(filename: Optional[str], path: Path) -> bool:
    return filename is not None and Path(filename).resolve() == path.resolve()


def resolve_function(mod: types.ModuleType, name: str) -> Callable:
    """Get a callable attribute of a module.

    Raises:
        TargetResolutionError: If it is missing or not callable
    """
    if not hasattr(mod, name):
        raise TargetResolutionError(f"Could not find function {name} in {mod.__name__}")
    fn = getattr(mod, name)
    if not callable(fn):
        raise TargetResolutionError(
            f"Cannot fuzz member '{name}' of {mod.__name__} because it is not a function"
        )
    return fn


def is_validator(fn: Any) -> bool:
    """Check whether a callable looks like a property validator.

    Validators take exactly one positional parameter and are annotated to
    return ``bool``.
    """
    if not inspect.isfunction(fn):
        return False
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        return False
    params = [
        p for p in inspect.signature(fn).parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    return hints.get("return") is bool and len(params) == 1


def find_validators(mod: types.ModuleType, function_name: str) -> List[FunctionRef]:
    """Find validators for a function by naming convention.

    A validator is a function defined in the same module whose name starts
    with the function's name (and is not the function itself).
    """
    refs = []
    for name, obj in vars(mod).items():
        if name == function_name or not name.startswith(function_name):
            continue
        if getattr(obj, "__module__", None) != mod.__name__:
            continue
        if is_validator(obj):
            refs.append(FunctionRef(name, mod.__name__))
    return refs
