from shipit.cli.app import run

run()
