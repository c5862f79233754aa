import os
import time


def sort_summary(last_sort) -> str:
    if not last_sort:
        return ""
    return "sort " + ", ".join(str(k) for k in last_sort)


def render_status(context, width):
    """
    context keys: status_msg, status_until, name, source_path, shape,
                  row, col, column, last_sort, filter
    """
    text = ""
    now = time.time()
    if context.get("status_msg") and now < context.get("status_until", 0):
        text = f" {context['status_msg']}"
    else:
        name = context.get("name") or ""
        source = context.get("source_path") or ""
        if source and not name:
            name = os.path.basename(source)
        rows, cols = context.get("shape", (0, 0))
        row = context.get("row", 0)
        column = context.get("column")
        position = f"R{row + 1}/{rows}" if rows else "R0/0"
        if column is not None:
            position += f" C{context.get('col', 0) + 1}/{cols} {column}"
        parts = [name, f"{rows}x{cols}", position]
        sort_text = sort_summary(context.get("last_sort"))
        if sort_text:
            parts.append(sort_text)
        if context.get("filter"):
            parts.append(f"filter {context['filter']}")
        text = " " + " | ".join(parts)

    return text.ljust(width)[:width]
