"""Objective evaluators: ``psi`` (negative log-density) and its gradient."""

from __future__ import annotations

from typing import Any, Callable

import numpy as np
import torch

PsiFn = Callable[[Any, Any], Any]
GradFn = Callable[[Any, Any], Any]


class Objective:
    """Bundle ``psi(u, prior)`` with its gradient ``lambda(u, prior)``.

    When ``grad`` is omitted the gradient is obtained with
    :mod:`torch.autograd`; ``psi`` then receives ``float64`` tensors and must
    be written with torch operations.
    """

    def __init__(self, psi: PsiFn, grad: GradFn | None = None, prior: Any = None) -> None:
        if not callable(psi):
            raise TypeError("psi must be callable")
        if grad is not None and not callable(grad):
            raise TypeError("grad must be callable or None")
        self._psi = psi
        self._grad = grad
        self.prior = prior

    @property
    def uses_autograd(self) -> bool:
        return self._grad is None

    def value(self, u: np.ndarray) -> float:
        """Return ``psi(u, prior)`` as a Python float."""
        if self.uses_autograd:
            with torch.no_grad():
                out = self._psi(torch.tensor(np.asarray(u), dtype=torch.float64), self.prior)
            return float(out)
        return float(np.asarray(self._psi(np.asarray(u, dtype=np.float64), self.prior)))

    def gradient(self, u: np.ndarray) -> np.ndarray:
        """Return ``lambda(u, prior)`` as a ``float64`` vector of length ``len(u)``."""
        return self.value_and_gradient(u)[1]

    def value_and_gradient(self, u: np.ndarray) -> tuple[float, np.ndarray]:
        u_np = np.asarray(u, dtype=np.float64).ravel()
        if self.uses_autograd:
            value, grad = self._autograd(u_np)
        else:
            value = self.value(u_np)
            grad = np.asarray(self._grad(u_np, self.prior), dtype=np.float64).ravel()
        if grad.shape != u_np.shape:
            raise ValueError(
                f"gradient has shape {grad.shape}, expected {u_np.shape}"
            )
        return value, grad

    def values(self, points: np.ndarray) -> np.ndarray:
        """Evaluate ``psi`` row-wise over a ``(J, D)`` array."""
        pts = np.asarray(points, dtype=np.float64)
        if pts.ndim != 2:
            raise ValueError("points must be a 2D array of shape (J, D)")
        return np.fromiter((self.value(row) for row in pts), dtype=np.float64, count=pts.shape[0])

    def _autograd(self, u: np.ndarray) -> tuple[float, np.ndarray]:
        u_t = torch.tensor(u, dtype=torch.float64, requires_grad=True)
        out = self._psi(u_t, self.prior)
        if not isinstance(out, torch.Tensor) or out.numel() != 1:
            raise TypeError("automatic gradients need psi to return a scalar torch tensor")
        if not out.requires_grad:
            return float(out.detach()), np.zeros_like(u)
        (grad,) = torch.autograd.grad(out.reshape(()), u_t, allow_unused=True)
        if grad is None:
            return float(out.detach()), np.zeros_like(u)
        return float(out.detach()), grad.detach().cpu().numpy()


__all__ = ["Objective"]
