from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import MarkdownViewer

import db.crud as crud
from utils.lifecycle import STATUS_LABELS
from utils.messages import OrdersChangedMessage
from utils.pure import format_money, generate_markdown_table, star_rating
from views.base_screen import BaseScreen


class SellerAnalyticsScreen(BaseScreen):
    """
    Shop insights: delivered revenue, order mix, best sellers, reviews.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-analytics", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(OrdersChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        seller = self.ctx.seller
        if seller is None:
            await self.query_one(MarkdownViewer).document.update("### No shop registered.")
            return
        stats = await crud.seller_analytics(seller.id)
        reviews = await crud.list_shop_reviews(seller.id)

        summary_md = (
            f"### {seller.shop_name}\n\n"
            f"- Total Sales (delivered): {format_money(stats['total_sales'])}\n"
            f"- Orders: {stats['total_orders']} ({stats['delivered_orders']} delivered)\n"
            f"- Avg Order Value: {format_money(stats['avg_order_value'])}\n"
            f"- Rating: {star_rating(stats['avg_rating'])} {stats['avg_rating']:.1f} "
            f"from {stats['review_count']} reviews\n\n"
        )
        status_md = "#### Orders by Status\n\n" + generate_markdown_table(
            ["Status", "Orders"],
            [[STATUS_LABELS[s], n] for s, n in sorted(stats["status_counts"].items())],
            ["l", "r"],
        )
        top_md = "\n\n#### Top Products\n\n" + generate_markdown_table(
            ["Product", "Qty Sold", "Revenue"],
            [[name, qty, format_money(rev)] for name, qty, rev in stats["top_products"]],
            ["l", "r", "r"],
        )
        reviews_md = "\n\n#### Latest Reviews\n\n" + (
            "\n".join(
                f"- {star_rating(r.rating)} {reviewer or 'Customer'}: {r.comment or ''}"
                for r, reviewer in reviews[:5]
            )
            or "No reviews yet."
        )
        await self.query_one(MarkdownViewer).document.update(
            summary_md + status_md + top_md + reviews_md
        )
