from campussense.ingest.service import main

main()
