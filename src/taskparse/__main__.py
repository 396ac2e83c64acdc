from taskparse.cli import main

main()
