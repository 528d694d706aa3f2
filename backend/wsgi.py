# backend/wsgi.py
from facturflow import create_app

app = create_app()
