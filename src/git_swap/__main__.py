from git_swap.cli import main

main()
