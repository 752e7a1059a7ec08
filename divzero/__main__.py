from divzero.checker import main

if __name__ == "__main__":
    main()
