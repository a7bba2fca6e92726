from toolhost.services.slack import main

if __name__ == "__main__":
    main()
