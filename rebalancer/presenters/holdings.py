"""Plain-text report of a rebalance result."""

from dataclasses import dataclass

import pandas as pd

from rebalancer.domain.assets import AssetSymbol, AssetVector
from rebalancer.services.rebalancing import AccountHoldings, AccountRole, RebalanceResult

RULE_WIDTH = 54


@dataclass(frozen=True)
class HoldingsTableRow:
    symbol: str
    description: str
    row_type: str  # 'holding', 'cash', 'other', 'total', 'outside'

    purchase_sell: str
    purchase_sell_raw: float | None
    current: str
    current_raw: float
    target: str
    target_raw: float | None


def _money(value: float | None) -> str:
    if value is None:
        return ""
    return f"${value:,.2f}"


def _shares(value: float | None) -> str:
    if value is None:
        return ""
    return f"{value:,.2f}"


def _ratio(vector: AssetVector) -> str:
    stock, bond, inflation = vector.stock_bond_inflation()
    return f"{stock:.1f}:{bond:.1f}:{inflation:.1f}"


class HoldingsTableBuilder:
    def build_rows(self, holdings: AccountHoldings) -> list[HoldingsTableRow]:
        """
        Build one row per tradable bucket followed by the summary rows.

        Purchase/sell is in shares; current and target are in dollars.
        """
        rows = [
            self._row(
                symbol.ticker,
                symbol.description,
                "holding",
                holdings.delta[symbol],
                holdings.current[symbol],
                holdings.target[symbol],
            )
            for symbol in AssetSymbol.tradable()
        ]

        current, target = holdings.current, holdings.target
        rows.append(
            self._row(
                "Cash",
                AssetSymbol.CASH.description,
                "cash",
                None,
                current[AssetSymbol.CASH],
                target[AssetSymbol.CASH],
            )
        )
        if current[AssetSymbol.OTHER]:
            rows.append(
                self._row(
                    "Other",
                    "Unsupported holdings",
                    "other",
                    None,
                    current[AssetSymbol.OTHER],
                    target[AssetSymbol.OTHER],
                )
            )
        rows.append(
            self._row("Total", "", "total", None, current.total_value(), target.total_value())
        )
        rows.append(
            self._row(
                "Outside stock",
                "",
                "outside",
                None,
                current.outside_stock,
                target.outside_stock,
            )
        )
        rows.append(
            self._row(
                "Outside bond", "", "outside", None, current.outside_bond, target.outside_bond
            )
        )
        return rows

    def _row(
        self,
        symbol: str,
        description: str,
        row_type: str,
        delta: float | None,
        current: float,
        target: float | None,
    ) -> HoldingsTableRow:
        return HoldingsTableRow(
            symbol=symbol,
            description=description,
            row_type=row_type,
            purchase_sell=_shares(delta),
            purchase_sell_raw=delta,
            current=_money(current),
            current_raw=current,
            target=_money(target),
            target_raw=target,
        )

    def to_frame(self, rows: list[HoldingsTableRow]) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Symbol": [r.symbol for r in rows],
                "Purchase/Sell": [r.purchase_sell for r in rows],
                "Current": [r.current for r in rows],
                "Target": [r.target for r in rows],
            }
        )

    def render(self, role: AccountRole, holdings: AccountHoldings) -> str:
        frame = self.to_frame(self.build_rows(holdings))
        ratio_line = (
            f"Stock:Bond:Inflation  current {_ratio(holdings.current)}"
            f"  target {_ratio(holdings.target)}"
        )
        return "\n".join(
            [
                role.label,
                "-" * RULE_WIDTH,
                frame.to_string(index=False),
                ratio_line,
                "=" * RULE_WIDTH,
            ]
        )


def render_target(target: AssetVector) -> str:
    """Shared retirement target, one line per bucket."""
    values = [target[symbol] for symbol in AssetSymbol.tradable()]
    frame = pd.DataFrame(
        {
            "Symbol": [symbol.ticker for symbol in AssetSymbol.tradable()]
            + ["Cash", "Total", "Outside stock", "Outside bond"],
            "Value": [
                _money(v)
                for v in values
                + [
                    target[AssetSymbol.CASH],
                    target.total_value(),
                    target.outside_stock,
                    target.outside_bond,
                ]
            ],
        }
    )
    return "\n".join(
        [
            "Retirement target",
            "-" * RULE_WIDTH,
            frame.to_string(index=False),
            f"Stock:Bond:Inflation  {_ratio(target)}",
            "=" * RULE_WIDTH,
        ]
    )


def render_result(result: RebalanceResult) -> str:
    """Every present account, then the shared retirement target if one was built."""
    builder = HoldingsTableBuilder()
    sections = [builder.render(role, holdings) for role, holdings in result.accounts()]
    if result.retirement_target is not None:
        sections.append(render_target(result.retirement_target))
    if not sections:
        return "No accounts with holdings to rebalance"
    return "\n\n".join(sections)
