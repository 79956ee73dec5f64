"""
Valuation & settlement engines.

Чистые функции над VaultLedger и снапшотом котировок: AUM/NAV, выпуск shares,
withdrawal waterfall.
"""

from src.engine.issuance import calc_mint_shares
from src.engine.redemption import calc_withdraw_amounts, shares_to_burn, validate_candidates
from src.engine.valuation import asset_usd_value, compute_aum, compute_nav, nav_from_aum

__all__ = [
    # Valuation
    "asset_usd_value",
    "compute_aum",
    "compute_nav",
    "nav_from_aum",
    # Issuance
    "calc_mint_shares",
    # Redemption
    "calc_withdraw_amounts",
    "shares_to_burn",
    "validate_candidates",
]
