from datetime import date
from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, MarkdownViewer, TabbedContent, TabPane

import db.crud as crud
from db.demo import provision_demo_sellers
from db.models import DELIVERY_LABELS, Commission, Seller
from utils.errors import MarketplaceError
from utils.lifecycle import STATUS_LABELS
from utils.pure import format_money, generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


class AdminScreen(BaseScreen):
    """
    Seller approvals, platform analytics, monthly commissions and demo logins.
    """

    def __init__(self) -> None:
        super().__init__()
        self._pending: Dict[str, Seller] = {}
        self._commissions: Dict[str, Commission] = {}
        self._shop_names: Dict[str, str] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-admin"):
            with TabPane("Approvals", id="tab-approvals"):
                with Vertical():
                    yield DataTable(id="table-pending")
                    with Horizontal(classes="dialog-btns"):
                        yield Button("Reject", id="btn-reject", variant="error")
                        yield Button("Approve", id="btn-approve", variant="success")
                        yield Button("Create Demo Shops", id="btn-demo")
            with TabPane("Analytics", id="tab-analytics"):
                yield MarkdownViewer(id="md-platform", show_table_of_contents=False)
            with TabPane("Commissions", id="tab-commissions"):
                with Vertical():
                    with Horizontal(classes="form-row"):
                        yield Input(date.today().strftime("%Y-%m"), placeholder="YYYY-MM", id="input-month")
                        yield Button("Compute Month", id="btn-compute")
                        yield Button("Mark Paid", id="btn-paid", variant="success")
                    yield DataTable(id="table-commissions")
            with TabPane("Demo Logins", id="tab-logins"):
                yield DataTable(id="table-logins")

    def on_mount(self) -> None:
        pending = self.query_one("#table-pending", DataTable)
        pending.cursor_type = "row"
        pending.zebra_stripes = True
        pending.add_columns("Shop", "Category", "Address", "Phone", "Delivery", "Applied")

        commissions = self.query_one("#table-commissions", DataTable)
        commissions.cursor_type = "row"
        commissions.zebra_stripes = True
        commissions.add_columns("Shop", "Month", "Sales", "Rate", "Commission", "Paid")

        logins = self.query_one("#table-logins", DataTable)
        logins.zebra_stripes = True
        logins.add_columns("Shop", "Category", "Email", "Password", "Approved")
        self.handle_reload()

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        if not self.ctx.user:
            return
        try:
            await self._load_pending()
            await self._load_analytics()
            await self._load_commissions()
            await self._load_logins()
        except MarketplaceError as e:
            self.show_error(e)

    async def _load_pending(self) -> None:
        pending = await crud.list_pending_sellers(self.ctx.user.id)
        self._pending = {s.id: s for s in pending}
        table = self.query_one("#table-pending", DataTable)
        table.clear()
        for s in pending:
            table.add_row(
                s.shop_name,
                s.category.capitalize(),
                s.address,
                s.phone,
                ", ".join(DELIVERY_LABELS[d] for d in s.delivery_options),
                s.created_at[:10],
                key=s.id,
            )

    async def _load_analytics(self) -> None:
        stats = await crud.admin_analytics(self.ctx.user.id)
        md = (
            "### Platform Overview\n\n"
            f"- Revenue (delivered): {format_money(stats['total_revenue'])}\n"
            f"- Orders: {stats['total_orders']}\n"
            f"- Avg Order Value: {format_money(stats['avg_order_value'])}\n"
            f"- Commission earned: {format_money(stats['commission'])}\n"
            f"- Shops: {stats['approved_sellers']} approved, {stats['pending_sellers']} pending\n\n"
            "#### Orders by Status\n\n"
            + generate_markdown_table(
                ["Status", "Orders"],
                [[STATUS_LABELS[s], n] for s, n in sorted(stats["status_counts"].items())],
                ["l", "r"],
            )
            + "\n\n#### Revenue by Shop\n\n"
            + generate_markdown_table(
                ["Shop", "Delivered Orders", "Revenue"],
                [[name, n, format_money(rev)] for name, n, rev in stats["revenue_by_shop"]],
                ["l", "r", "r"],
            )
        )
        await self.query_one("#md-platform", MarkdownViewer).document.update(md)

    async def _load_commissions(self) -> None:
        rows = await crud.list_commissions(self.ctx.user.id)
        self._commissions = {c.id: c for c in rows}
        self._shop_names = {s.id: s.shop_name for s in await crud.list_sellers()}
        table = self.query_one("#table-commissions", DataTable)
        table.clear()
        for c in rows:
            table.add_row(
                self._shop_names.get(c.seller_id, c.seller_id),
                c.month,
                format_money(c.total_sales),
                f"{c.commission_rate:.0%}",
                format_money(c.commission_amount),
                c.paid_at[:10] if c.is_paid and c.paid_at else "No",
                key=c.id,
            )

    async def _load_logins(self) -> None:
        table = self.query_one("#table-logins", DataTable)
        table.clear()
        for c in await crud.list_seller_credentials(self.ctx.user.id):
            table.add_row(
                c.shop_name,
                c.category.capitalize(),
                c.email,
                c.password,
                "Yes" if c.is_approved else "No",
                key=c.id,
            )

    def _selected_key(self, table_id: str) -> Optional[str]:
        table = self.query_one(table_id, DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return row_key.value

    @on(Button.Pressed, "#btn-approve")
    @work()
    async def handle_approve(self) -> None:
        seller = self._pending.get(self._selected_key("#table-pending") or "")
        if seller is None:
            return
        try:
            await crud.approve_seller(self.ctx.user.id, seller.id)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify(f"{seller.shop_name} approved.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-reject")
    @work()
    async def handle_reject(self) -> None:
        seller = self._pending.get(self._selected_key("#table-pending") or "")
        if seller is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Reject and delete the application for {seller.shop_name}?",
                primary_text="Reject",
                secondary_text="Keep",
                tone="error",
            )
        ):
            return
        try:
            await crud.reject_seller(self.ctx.user.id, seller.id)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify(f"{seller.shop_name} rejected.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-demo")
    @work(exclusive=True, group="demo")
    async def handle_demo(self) -> None:
        results = await provision_demo_sellers()
        created = [r for r in results if r["status"] == "created"]
        self.notify(f"{len(created)} demo shops created, {len(results) - len(created)} skipped.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-compute")
    @work(exclusive=True, group="commissions")
    async def handle_compute(self) -> None:
        month = self.query_one("#input-month", Input).value.strip()
        try:
            for seller in await crud.list_sellers():
                await crud.record_monthly_commission(self.ctx.user.id, seller.id, month)
        except MarketplaceError as e:
            self.show_error(e)
            return
        self.notify(f"Commissions computed for {month}.")
        await self._load_commissions()

    @on(Button.Pressed, "#btn-paid")
    @work(exclusive=True, group="commissions")
    async def handle_paid(self) -> None:
        commission = self._commissions.get(self._selected_key("#table-commissions") or "")
        if commission is None:
            return
        if commission.is_paid:
            self.notify("Already paid.", severity="warning")
            return
        try:
            await crud.mark_commission_paid(self.ctx.user.id, commission.id)
        except MarketplaceError as e:
            self.show_error(e)
            return
        await self._load_commissions()
