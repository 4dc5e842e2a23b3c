# datavista_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from functools import wraps
from flask import session, flash, redirect, url_for, request

from datavista_app.services.identity import current_user


def _signed_in_user():
    """User behind the session cookie; a cookie whose user is gone or disabled is dropped."""
    if not session.get("user"):
        return None
    u = current_user()
    if u is None or not u.active:
        session.clear()
        return None
    return u

def login_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if _signed_in_user() is None:
            flash("Please sign in to continue.", "warning")
            return redirect(url_for("auth.login", next=request.path))
        return view_func(*args, **kwargs)
    return wrapper

def admin_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        user = _signed_in_user()
        if user is None:
            flash("Please sign in to continue.", "warning")
            return redirect(url_for("auth.login", next=request.path))
        if not user.is_admin:
            flash("Admin access only.", "danger")
            return redirect(url_for("dashboards.dashboard"))
        return view_func(*args, **kwargs)
    return wrapper
