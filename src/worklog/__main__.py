from worklog.cli import run

run()
