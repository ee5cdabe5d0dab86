from soy_operator.main import cli

cli()
