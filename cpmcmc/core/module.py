from typing import Callable, Optional, Dict, Any, get_type_hints, Type, ClassVar
from types import MappingProxyType
from dataclasses import dataclass
import functools
import inspect

from prefect import flow, task


__all__ = [
    "InputSpec",
    "Module",
]

_MISSING = object()


@dataclass
class InputSpec:
    """Specification for a module input.

    Describes the expected type, requirement status, and default value for
    an input to a :class:`Module`. Used by :meth:`Module.set_input` to
    enforce validation and provide defaults.

    Attributes:
        type: Expected Python type for this input.
        required: Whether this input must be explicitly provided.
        default: Default value; `_MISSING` indicates no default provided.
    """
    type: Optional[Type] = None
    required: bool = False
    default: Any = _MISSING


class Module(object):
    """Base class for cpmcmc pipeline modules.

    Provides dependency injection, input specification, type validation and
    Prefect integration. A subclass declares the modules it depends on in
    :pyattr:`DEPENDENCIES`, registers its computations with :meth:`run_func`
    and can then be composed into Prefect flows.

    Typical usage:
        1. Subclass :class:`Module` and declare required dependencies via
           the class variable :pyattr:`DEPENDENCIES`.
        2. Define input defaults using :meth:`set_input`.
        3. Register computational functions using :meth:`run_func`.
        4. Call registered functions as Prefect tasks or flows.

    Notes:
        - Registered functions are meant for pipeline-level work. Tight loops
          such as individual MCMC steps call plain methods instead, so no
          task run is created per iteration.
        - The undecorated function stays reachable as ``module.<name>.fn``.

    Attributes:
        DEPENDENCIES: Names and types of required dependency modules.
        dependencies: Injected dependency instances.
        inputs: Declared input specifications.
        _run_funcs: Registered computational functions.
    """

    DEPENDENCIES: ClassVar[Dict[str, Type['Module']]] = MappingProxyType({})

    def __init__(self, **dependencies: 'Module'):
        """Initializes the module and validates dependencies.

        Args:
            **dependencies: Dependency modules to inject into this module.

        Raises:
            RuntimeError: If required dependencies are missing or unexpected ones are provided.
            TypeError: If a dependency is not an instance of its declared type.
        """
        missing = [name for name in self.DEPENDENCIES if name not in dependencies]
        if missing:
            raise RuntimeError(f"Missing required dependencies: {missing}")

        unexpected = [name for name in dependencies if name not in self.DEPENDENCIES]
        if unexpected:
            raise RuntimeError(f"Unexpected dependencies provided: {unexpected}")

        for name, dep_instance in dependencies.items():
            expected = self.DEPENDENCIES[name]
            if not isinstance(dep_instance, Module):
                raise TypeError(f"Dependency '{name}' must be Module subclass instance; got {type(dep_instance)}")
            if isinstance(expected, type) and not isinstance(dep_instance, expected):
                raise TypeError(f"Dependency '{name}' must be {expected.__name__}; got {type(dep_instance).__name__}")

        self.dependencies: Dict[str, Module] = dict(dependencies)
        self.inputs: Dict[str, Dict[str, Any]] = {}
        self._run_funcs: Dict[str, Callable] = {}

        # Per-run-function input specification (built from signature, then overridden by set_input)
        self._inputs_for_run: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def set_input(self, **input_defaults):
        """Defines input specifications for the module.

        Each keyword argument specifies either an :class:`InputSpec`
        (for type and requirement) or a simple default value. The
        specifications apply to every run function registered afterwards.

        Example:
            >>> self.set_input(config=InputSpec(type=AlgorithmConfig, required=True), seed=None)

        Args:
            **input_defaults: Key–value pairs of input names and their specifications.
        """
        for key, spec in input_defaults.items():
            if isinstance(spec, InputSpec):
                self.inputs[key] = {
                    'type': spec.type,
                    'required': spec.required,
                    'default': spec.default,
                }
            else:
                self.inputs[key] = {
                    'type': None,
                    'required': False,
                    'default': spec,
                }

    def run_func(
            self,
            f: Callable,
            *,
            name: Optional[str] = None,
            as_task: bool = True,
            ) -> Callable:
        """Registers a computational function as a Prefect task or flow.

        Steps performed on each call of the registered function:
            1. Fills defaults and checks required / unknown inputs.
            2. Checks inputs annotated with a plain class.
            3. Injects dependencies by parameter name.
            4. Calls the function.

        Args:
            f: Function implementing the computation.
            name: Custom function name override.
                Defaults to the original function name.
            as_task: Whether to register the function as a Prefect task
                (``True``) or flow (``False``). Defaults to ``True``.

        Returns:
            Callable: The decorated Prefect task or flow.

        Raises:
            RuntimeError: If a run function with the same name is already registered.
        """
        run_name = name or f.__name__
        sig = inspect.signature(f)

        if run_name in self._run_funcs:
            raise RuntimeError(f"Run function '{run_name}' already registered")

        hints = get_type_hints(f)
        specs: Dict[str, Dict[str, Any]] = {}
        for pname, param in sig.parameters.items():
            # dependencies are injected by name, not treated as inputs
            if pname == "self" or pname in self.dependencies:
                continue
            has_default = param.default is not inspect.Parameter.empty
            ann = hints.get(pname)
            specs[pname] = {
                'type': ann if isinstance(ann, type) else None,
                'required': not has_default,
                'default': param.default if has_default else _MISSING,
            }
        for key, meta in self.inputs.items():
            if key not in specs:
                continue
            if meta['type'] is not None:
                specs[key]['type'] = meta['type']
            if meta['default'] is not _MISSING:
                specs[key]['default'] = meta['default']
                specs[key]['required'] = False
            elif meta['required']:
                specs[key]['required'] = True
        self._inputs_for_run[run_name] = specs

        def _ensure_inputs_satisfied(kwargs: Dict[str, Any]) -> Dict[str, Any]:
            """Validates provided inputs and fills missing defaults.

            Raises:
                TypeError: If required inputs are missing or unexpected inputs are given.
            """
            merged = dict(kwargs)
            for k, meta in specs.items():
                if k not in merged and meta['default'] is not _MISSING:
                    merged[k] = meta['default']

            missing = [k for k, meta in specs.items() if k not in merged]
            if missing:
                raise TypeError(f"Missing required inputs: {missing}")

            unknown = [k for k in merged if k not in specs]
            if unknown:
                raise TypeError(f"Unknown inputs provided: {unknown}. Declared inputs are: {sorted(specs)}")
            return merged

        def type_check(kwargs: Dict[str, Any]) -> None:
            """Checks inputs against plain class annotations; ``None`` passes for optional inputs.

            Raises:
                TypeError: If an argument has the wrong type.
            """
            for pname, value in kwargs.items():
                expected = specs[pname]['type']
                if expected is None or value is None:
                    continue
                if not isinstance(value, expected):
                    raise TypeError(
                        f"Argument '{pname}' expected {expected.__name__}; got {type(value).__name__}"
                    )

        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            """Executes the registered run function with validation and dependency injection."""
            missing = [k for k in self.DEPENDENCIES if k not in self.dependencies]
            if missing:
                raise RuntimeError(
                    f"Missing required dependencies at runtime: {missing}. Available: {list(self.dependencies.keys())}"
                )

            input_names = list(specs)
            if len(args) > len(input_names):
                raise TypeError(f"{run_name}() takes at most {len(input_names)} positional inputs")
            user_kwargs = {**dict(zip(input_names, args)), **kwargs}

            user_kwargs = _ensure_inputs_satisfied(user_kwargs)
            type_check(user_kwargs)

            dep_kwargs = {k: v for k, v in self.dependencies.items() if k in sig.parameters}
            return f(**dep_kwargs, **user_kwargs)

        # Prefect binds calls against the visible signature; keep it (*args, **kwargs)
        # so inputs defaulted through set_input and injected dependencies can be omitted.
        del wrapper.__wrapped__
        pf = task(wrapper) if as_task else flow(validate_parameters=False)(wrapper)

        self._run_funcs[run_name] = pf
        setattr(self, run_name, pf)
        return pf

    def __repr__(self):
        """Return a compact summary representation of the module."""
        return f"<{type(self).__name__} deps={list(self.dependencies.keys())} inputs={list(self.inputs.keys())} run_funcs={list(self._run_funcs.keys())}>"

    def __str__(self):
        """Return a human-readable, multi-line summary of the module configuration."""
        deps = ", ".join(self.dependencies.keys()) or "None"
        inputs = ", ".join(self.inputs.keys()) or "None"
        run_funcs = ", ".join(self._run_funcs.keys()) or "None"
        return f"{type(self).__name__}:\n  Dependencies: {deps}\n  Inputs: {inputs}\n  Run Functions: {run_funcs}"
