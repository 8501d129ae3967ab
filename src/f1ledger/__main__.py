from f1ledger.worker import main

if __name__ == "__main__":
    main()
