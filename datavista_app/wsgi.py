# datavista_app/wsgi.py
from datavista_app import create_app

app = create_app()
