from .calculator import main

main()
