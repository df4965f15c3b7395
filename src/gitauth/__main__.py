from gitauth.cli.main import cli

cli()
