from chronos.cli import app

app()
