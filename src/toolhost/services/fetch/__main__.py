from toolhost.services.fetch import main

if __name__ == "__main__":
    main()
