from celq.cli import main

main()
