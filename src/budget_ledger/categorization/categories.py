"""Labels used when a transaction has no application category."""

UNCATEGORIZED = "Uncategorized"


def category_label(app_category_id, app_sub_category_id=None) -> str:
    """Human-readable 'Main / Sub' label for display"""
    if not app_category_id:
        return UNCATEGORIZED
    if app_sub_category_id:
        return f"{app_category_id} / {app_sub_category_id}"
    return app_category_id
