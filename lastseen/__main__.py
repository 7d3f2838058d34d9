from lastseen.cli import app

app()
