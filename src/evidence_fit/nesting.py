from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .errors import NestingError
from .params import ParameterVector

__all__ = [
    "Nesting",
    "derive_nesting",
    "find_nesting",
    "register_nesting",
    "registered_nestings",
]


@dataclass(frozen=True)
class Nesting:
    """How a restricted model embeds in a full model.

    equate:
        restricted parameter -> full parameters it stands for. Mapping one
        restricted parameter to several full ones equates them.
    fix:
        full parameter -> constant it is held at in the restricted model.
    """

    full: str
    restricted: str
    equate: Mapping[str, Tuple[str, ...]]
    fix: Mapping[str, float] = field(default_factory=dict)

    def validate(
        self, full_names: Sequence[str], restricted_names: Sequence[str]
    ) -> int:
        """Check the mapping against both parameter lists; return df."""
        full_names = tuple(full_names)
        restricted_names = tuple(restricted_names)
        label = f"{self.restricted!r} in {self.full!r}"

        if len(full_names) <= len(restricted_names):
            raise NestingError(
                f"Nesting {label} needs more full than restricted parameters; "
                f"got {len(full_names)} vs {len(restricted_names)}."
            )
        if set(self.equate) != set(restricted_names):
            raise NestingError(
                f"Nesting {label} must map every restricted parameter exactly; "
                f"mapping has {sorted(self.equate)}, model has {sorted(restricted_names)}."
            )

        targets = []
        for name, fulls in self.equate.items():
            if not fulls:
                raise NestingError(f"Nesting {label}: {name!r} maps to no full parameter.")
            targets.extend(fulls)
        targets.extend(self.fix)
        dupes = sorted({t for t in targets if targets.count(t) > 1})
        if dupes:
            raise NestingError(f"Nesting {label}: {dupes} constrained more than once.")
        if set(targets) != set(full_names):
            missing = sorted(set(full_names) - set(targets))
            unknown = sorted(set(targets) - set(full_names))
            raise NestingError(
                f"Nesting {label} must cover every full parameter; "
                f"missing {missing}, unknown {unknown}."
            )
        return len(full_names) - len(restricted_names)

    def embed(self, restricted_params: ParameterVector) -> Dict[str, float]:
        """Full-model parameter vector equivalent to ``restricted_params``."""
        out: Dict[str, float] = {n: float(v) for n, v in self.fix.items()}
        for name, fulls in self.equate.items():
            for f in fulls:
                out[f] = float(restricted_params[name])
        return out


_REGISTRY: Dict[Tuple[str, str], Nesting] = {}
_builtins_loaded = False


def register_nesting(nesting: Nesting) -> None:
    """Make ``nesting`` available to likelihood-ratio tests by model name."""
    _REGISTRY[(nesting.full, nesting.restricted)] = nesting


def _registered(full: str, restricted: str) -> Optional[Nesting]:
    global _builtins_loaded
    if not _builtins_loaded:
        from .models import BUILTIN_NESTINGS

        _builtins_loaded = True
        for n in BUILTIN_NESTINGS:
            _REGISTRY.setdefault((n.full, n.restricted), n)
    return _REGISTRY.get((full, restricted))


def derive_nesting(full_model: Any, restricted_model: Any) -> Optional[Nesting]:
    """Nesting for a restricted model built by fixing parameters of the full one.

    Returns None unless both wrap the same function, every parameter fixed in
    the full model is fixed to the same value in the restricted one, and the
    restricted model fixes at least one more.
    """
    if getattr(full_model, "func", None) is not getattr(restricted_model, "func", object()):
        return None
    if tuple(full_model.param_names) != tuple(restricted_model.param_names):
        return None
    full_fixed = full_model.fixed_values
    restricted_fixed = restricted_model.fixed_values
    for n, v in full_fixed.items():
        if restricted_fixed.get(n) != v:
            return None
    extra = {n: v for n, v in restricted_fixed.items() if n not in full_fixed}
    if not extra:
        return None
    return Nesting(
        full=full_model.name,
        restricted=restricted_model.name,
        equate={n: (n,) for n in restricted_model.free_names},
        fix=extra,
    )


def find_nesting(full_model: Any, restricted_model: Any) -> Nesting:
    """Registered nesting by model names, else one derived from ``fix``."""
    full = str(getattr(full_model, "name", full_model))
    restricted = str(getattr(restricted_model, "name", restricted_model))
    found = _registered(full, restricted)
    if found is None and full_model is not None and hasattr(full_model, "func"):
        found = derive_nesting(full_model, restricted_model)
    if found is None:
        raise NestingError(
            f"No nesting relation known for {restricted!r} in {full!r}; "
            "pass nesting=Nesting(...) explicitly or register one."
        )
    return found


def registered_nestings() -> Iterable[Nesting]:
    _registered("", "")
    return tuple(_REGISTRY.values())
