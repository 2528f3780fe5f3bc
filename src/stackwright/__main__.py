from stackwright.main import main

main()
