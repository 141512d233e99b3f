from example_factory.cli import main

main()
