"""ASGI entrypoint: ``uvicorn study_helper.asgi:app``"""
from study_helper.main import create_app

app = create_app()
