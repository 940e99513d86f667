from lexis.interface.cli import main

main()
