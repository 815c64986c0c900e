from cmdpool.cli import main

main()
