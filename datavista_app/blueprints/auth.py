# datavista_app/blueprints/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from sqlalchemy.exc import SQLAlchemyError

from datavista_app.extensions import db
from datavista_app.services.identity import get_identity

bp = Blueprint("auth", __name__)

def _next_url():
    nxt = request.args.get("next") or request.form.get("next") or ""
    # only local paths
    if not nxt.startswith("/") or nxt.startswith("//"):
        return url_for("dashboards.dashboard")
    return nxt

@bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        email = request.form.get("email")
        pwd = request.form.get("password")

        u = get_identity().sign_in_with_credentials(email, pwd)
        if not u:
            flash("Invalid credentials.", "danger")
            return redirect(url_for("auth.login"))

        flash("Signed in.", "success")
        return redirect(_next_url())
    return render_template("auth_login.html", google_client_id=current_app.config.get("GOOGLE_CLIENT_ID"))

@bp.route("/login/google", methods=["POST"])
def login_google():
    token = request.form.get("credential") or request.form.get("id_token")
    u = get_identity().sign_in_with_federated(token)
    if not u:
        flash("Google sign-in failed.", "danger")
        return redirect(url_for("auth.login"))
    flash("Signed in.", "success")
    return redirect(_next_url())

@bp.route("/logout")
def logout():
    get_identity().sign_out()
    flash("You have been signed out.", "info")
    return redirect(url_for("core.index"))

@bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "POST":
        name = request.form.get("name", "")
        email = request.form.get("email")
        pwd = request.form.get("password")

        try:
            get_identity().sign_up(name, email, pwd)
        except ValueError as e:
            flash(str(e), "warning")
            return redirect(url_for("auth.register"))
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Sign-up failed")
            flash("Could not create the account. Please try again.", "danger")
            return redirect(url_for("auth.register"))

        flash("Account created.", "success")
        return redirect(url_for("dashboards.dashboard"))

    return render_template("auth_register.html")
