from samapp.cli import main

main()
