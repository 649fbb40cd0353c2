from flipbook.main import main

main()
