from inliner.cli import main

main()
