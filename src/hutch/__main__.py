from hutch.main import app

app()
