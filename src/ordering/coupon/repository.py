"""Coupon lookups by code and public listing."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError

from ordering.coupon.coupon import Coupon, normalize_code
from ordering.domain import ordering


@ordering.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        """Return the coupon with this code, or None."""
        results = self._dao.query.filter(code=normalize_code(code)).all().items
        return results[0] if results else None

    def get_by_code(self, code: str) -> Coupon:
        coupon = self.find_by_code(code)
        if coupon is None:
            raise ObjectNotFoundError(f"Coupon `{normalize_code(code)}` does not exist")
        return coupon

    def public_coupons(self, now: datetime | None = None) -> list[Coupon]:
        """Active public coupons inside their window with uses left, best first."""
        now = now or datetime.now(UTC)
        candidates = self._dao.query.filter(is_active=True, is_public=True).all().items
        return sorted(
            (coupon for coupon in candidates if coupon.is_valid(now)),
            key=lambda coupon: coupon.discount_value,
            reverse=True,
        )
