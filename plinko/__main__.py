from plinko.cli import entry_point

entry_point()
