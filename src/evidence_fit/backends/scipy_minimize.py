from __future__ import annotations

from typing import Any, Dict

import numpy as np
from scipy.optimize import minimize

from .common import BackendResult, Objective


class ScipyMinimizeBackend:
    name = "scipy.minimize"

    def minimize(
        self,
        *,
        objective: Objective,
        p0: np.ndarray,
        options: dict[str, Any],
    ) -> BackendResult:
        """Local search using scipy.optimize.minimize.

        Backend options:
        - method: optimizer name (default: Nelder-Mead, derivative-free)
        - options: dict forwarded to scipy.optimize.minimize
        """
        method = str(options.get("method", "Nelder-Mead"))
        scipy_opts: Dict[str, Any] = dict(options.get("options", None) or {})
        p0 = np.asarray(p0, dtype=float)

        try:
            res = minimize(
                lambda v: float(objective(np.asarray(v, dtype=float))),
                p0,
                method=method,
                options=scipy_opts,
            )
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            # Soft fail: return the start point.
            return BackendResult(
                theta=p0,
                value=float(objective(p0)),
                success=False,
                message=str(e),
                stats={"backend": self.name, "method": method, "error": str(e)},
            )

        return BackendResult(
            theta=np.asarray(res.x, dtype=float).reshape(p0.shape),
            value=float(res.fun),
            success=bool(res.success),
            message=str(res.message),
            stats={
                "backend": self.name,
                "method": method,
                "nfev": int(getattr(res, "nfev", 0) or 0),
                "nit": int(getattr(res, "nit", 0) or 0),
            },
        )
