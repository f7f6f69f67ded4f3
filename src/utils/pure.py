from typing import List, Literal, Optional

CURRENCY = "₹"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[object]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows; cells are converted with str().
        aligns: One of 'l', 'c', 'r' per column. Defaults to left.

    Returns:
        str: Markdown formatted table, or "" when there is nothing to show.
    """
    if not rows and not headers:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [md_cell(h) for h in headers]
    body = [[md_cell(c) for c in row] for row in rows]

    if aligns is None:
        aligns = ["l"] * len(headers)
    elif len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines += ["| " + " | ".join(row) + " |" for row in body]
    return "\n".join(lines)


def md_cell(value: object) -> str:
    # pipes and newlines would break the row
    if value is None:
        return "-"
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_money(amount: float) -> str:
    return f"{CURRENCY}{amount:,.2f}"


def format_distance(km: Optional[float]) -> str:
    if km is None:
        return "-"
    if km < 1:
        return f"{round(km * 1000)} m"
    return f"{km:.1f} km"


def progress_bar(step: int, total: int, width: int = 5) -> str:
    """Text progress such as '■■■□□'; step 0 renders as all crosses."""
    if step <= 0:
        return "✕" * width
    filled = round(width * min(step, total) / total)
    return "■" * filled + "□" * (width - filled)


def star_rating(rating: float) -> str:
    full = int(round(rating))
    return "★" * full + "☆" * (5 - full)
