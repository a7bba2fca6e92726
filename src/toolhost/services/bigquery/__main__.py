from toolhost.services.bigquery import main

if __name__ == "__main__":
    main()
