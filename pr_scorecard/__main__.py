from pr_scorecard.cli import app

app()
