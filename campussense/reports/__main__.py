from campussense.reports.service import main

main()
