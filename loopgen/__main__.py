from loopgen.cli import main

main()
