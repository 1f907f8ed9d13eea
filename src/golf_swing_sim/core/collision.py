"""One-dimensional elastic collision between club head and ball.

The ball (body 2) is at rest before impact; the club head (body 1) arrives
with signed velocity ``u1`` along the line of impact. Conservation of
momentum and kinetic energy

    m1*u1   = m1*v1   + m2*v2
    m1*u1^2 = m1*v1^2 + m2*v2^2

reduce, after eliminating ``v2``, to the quadratic

    A*v1^2 + B*v1 + C = 0,   A = m1 + m2,  B = -2*m1*u1,  C = (m1 - m2)*u1^2

whose roots are ``u1`` (the bodies pass through each other) and the
post-impact velocity ``u1*(m1 - m2)/(m1 + m2)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import DegenerateSystem, InvalidInput


@dataclass(frozen=True)
class CollisionInput:
    mass1: float
    mass2: float
    pre_velocity1: float


@dataclass(frozen=True)
class CollisionResult:
    """Post-impact velocities together with the inputs they came from."""

    post_velocity1: float
    post_velocity2: float
    mass1: float
    mass2: float
    pre_velocity1: float

    @property
    def momentum_residual(self) -> float:
        """m1*u1 - (m1*v1 + m2*v2); zero up to round-off."""
        return self.mass1 * self.pre_velocity1 - (
            self.mass1 * self.post_velocity1 + self.mass2 * self.post_velocity2
        )

    @property
    def energy_residual(self) -> float:
        """Twice the kinetic energy lost in the collision; zero up to round-off."""
        return self.mass1 * self.pre_velocity1**2 - (
            self.mass1 * self.post_velocity1**2 + self.mass2 * self.post_velocity2**2
        )

    @property
    def smash_factor(self) -> float:
        """Ball speed over club head speed."""
        return self.post_velocity2 / self.pre_velocity1


def quadratic_coefficients(mass1: float, mass2: float, pre_velocity1: float) -> Tuple[float, float, float]:
    """Coefficients (A, B, C) of the collision quadratic in ``v1``."""
    m1, m2, u1 = float(mass1), float(mass2), float(pre_velocity1)
    return m1 + m2, -2.0 * m1 * u1, (m1 - m2) * u1**2


def _validate(mass1: float, mass2: float, pre_velocity1: Optional[float]) -> CollisionInput:
    for name, value in (("mass1", mass1), ("mass2", mass2)):
        if value is None or not math.isfinite(value) or value <= 0.0:
            raise InvalidInput(f"{name} must be a finite value > 0, got {value!r}")
    if pre_velocity1 is None:
        raise InvalidInput(
            "pre_velocity1 is missing; extract the impact speed from a trajectory with a detected crossing"
        )
    if not math.isfinite(pre_velocity1):
        raise InvalidInput(f"pre_velocity1 must be finite, got {pre_velocity1!r}")
    return CollisionInput(float(mass1), float(mass2), float(pre_velocity1))


def resolve_collision(mass1: float, mass2: float, pre_velocity1: Optional[float]) -> CollisionResult:
    """Post-impact velocities of a 1-D elastic collision with body 2 at rest.

    Parameters
    ----------
    mass1 : float
        Mass of the striking body (club head) [kg], > 0.
    mass2 : float
        Mass of the body at rest (ball) [kg], > 0.
    pre_velocity1 : float
        Signed velocity of body 1 along the impact axis [m/s].

    Returns
    -------
    CollisionResult
        The non-trivial root ``(v1, v2)``.

    Raises
    ------
    InvalidInput
        Non-positive masses or a missing/non-finite velocity.
    DegenerateSystem
        The quadratic is degenerate or has a double root (``u1 == 0``), so
        there is no collision distinct from the trivial solution.

    Notes
    -----
    Factoring the trivial root ``v1 = u1`` out of the quadratic (sum of
    roots ``-B/A``) leaves ``v1 = u1*(m1 - m2)/(m1 + m2)``, evaluated in
    this product form to avoid cancellation when ``m1`` is close to ``m2``.
    ``v2 = 2*m1*u1/(m1 + m2)`` follows from momentum conservation. The
    collision is distinct from the trivial solution ``(u1, 0)`` exactly
    when ``v2 != 0``; for a tiny ``m2/m1`` the rounded ``v1`` may equal
    ``u1`` while ``v2`` still carries the transferred momentum.
    """
    inp = _validate(mass1, mass2, pre_velocity1)
    m1, m2, u1 = inp.mass1, inp.mass2, inp.pre_velocity1

    a, b, c = quadratic_coefficients(m1, m2, u1)
    if not math.isfinite(a) or a == 0.0:
        raise DegenerateSystem(f"Collision quadratic is degenerate (A={a!r})")

    v1 = u1 * (m1 - m2) / a
    v2 = 2.0 * m1 * u1 / a
    if not (math.isfinite(v1) and math.isfinite(v2)) or v2 == 0.0:
        disc = b * b - 4.0 * a * c
        raise DegenerateSystem(
            f"Collision quadratic has no distinct non-trivial root (u1={u1!r}, discriminant={disc!r})"
        )
    return CollisionResult(
        post_velocity1=v1,
        post_velocity2=v2,
        mass1=m1,
        mass2=m2,
        pre_velocity1=u1,
    )
